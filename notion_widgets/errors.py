"""Error types shared by the widgets."""

from typing import Optional


class WidgetError(Exception):
    """Base class for recoverable widget errors."""


class ConfigError(WidgetError):
    """Widget configuration is missing or invalid."""


class NotionAPIError(WidgetError):
    """Notion API returned an error or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    def __str__(self) -> str:
        if self.status:
            return f"{self.message} (status={self.status}, code={self.code})"
        return self.message


class PageNotFoundError(WidgetError):
    """No daily page exists for the requested date."""

    def __init__(self, date_string: str):
        super().__init__(
            f"{date_string} 날짜의 페이지를 찾을 수 없습니다. "
            "노션에서 해당 날짜 페이지를 먼저 생성해주세요."
        )
        self.date_string = date_string


class EventFetchError(WidgetError):
    """Calendar events could not be loaded."""
