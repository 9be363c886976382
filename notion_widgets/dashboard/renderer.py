"""Widget image renderer."""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from notion_widgets.routine.models import DEFAULT_THEME, THEME_COLORS

logger = logging.getLogger(__name__)

DIMMED = "#B0B0B0"
WEEKEND = "#D05A7A"


def image_name(prefix: str, key: str) -> str:
    """File name (without extension) for a keyed image."""
    safe_key = re.sub(r"[^A-Za-z0-9_-]", "_", key)
    return f"{prefix}-{safe_key}"


class WidgetRenderer:
    """Renders calendar and routine report widgets to PNG images."""

    def __init__(self, output_dir: str = "static/images"):
        """
        Initialize renderer.

        Args:
            output_dir: Directory to save generated images
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Try to load fonts, fall back to default
        self.fonts = self._load_fonts()

    def _load_fonts(self) -> dict:
        """Load fonts for rendering."""
        fonts = {}

        font_paths = [
            "/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc",
            "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/System/Library/Fonts/AppleSDGothicNeo.ttc",  # macOS
        ]

        try:
            for path in font_paths:
                if Path(path).exists():
                    fonts["header"] = ImageFont.truetype(path, 28)
                    fonts["title"] = ImageFont.truetype(path, 20)
                    fonts["normal"] = ImageFont.truetype(path, 16)
                    fonts["small"] = ImageFont.truetype(path, 12)
                    logger.info(f"Loaded fonts from {path}")
                    break
        except OSError as e:
            logger.warning(f"Could not load TrueType fonts: {e}, using default")
            fonts = {}

        if not fonts:
            default_font = ImageFont.load_default()
            fonts["header"] = default_font
            fonts["title"] = default_font
            fonts["normal"] = default_font
            fonts["small"] = default_font

        return fonts

    def _colors(self, theme: str) -> dict:
        return THEME_COLORS.get(theme, THEME_COLORS[DEFAULT_THEME])

    def _save(self, image: Image.Image, prefix: str, key: str) -> tuple[str, str]:
        """
        Save image and return (filename, file_path).

        One file per (prefix, key); re-rendering overwrites it.
        """
        filename = image_name(prefix, key)
        file_path = self.output_dir / f"{filename}.png"
        tmp_path = self.output_dir / f".{filename}.tmp.png"

        # Write then rename so a response never reads a half-written file
        image.save(tmp_path, "PNG")
        os.replace(tmp_path, file_path)
        logger.info(f"Saved {prefix} to {file_path}")

        return filename, str(file_path)

    def _text_width(self, draw: ImageDraw.ImageDraw, text: str, font) -> int:
        bbox = draw.textbbox((0, 0), text, font=font)
        return bbox[2] - bbox[0]

    def render_calendar(
        self,
        view: dict,
        theme: str = DEFAULT_THEME,
        key: Optional[str] = None,
        width: int = 600,
        height: int = 560,
    ) -> tuple[str, str]:
        """
        Render a month view.

        Args:
            view: Month view from build_month_view()
            theme: Theme name
            key: Image identity, e.g. the calendar config ID (defaults to the month)
            width: Image width
            height: Image height

        Returns:
            Tuple of (filename, file_path)
        """
        colors = self._colors(theme)
        logger.info(f"Rendering calendar {view['title']}")

        image = Image.new("RGB", (width, height), "white")
        draw = ImageDraw.Draw(image)

        # Header
        draw.text((24, 20), view["title"], fill=colors["text"], font=self.fonts["header"])

        grid_top = 80
        cell_width = (width - 40) / 7
        rows = max(1, len(view["days"]) // 7)
        cell_height = (height - grid_top - 50) / (rows + 0.5)

        # Weekday header row
        for column, name in enumerate(view["weekdays"]):
            x = 20 + column * cell_width
            text_x = x + (cell_width - self._text_width(draw, name, self.fonts["small"])) / 2
            draw.text((text_x, grid_top), name, fill=colors["text"], font=self.fonts["small"])

        days_top = grid_top + cell_height / 2
        for index, day in enumerate(view["days"]):
            self._draw_day(draw, day, index, days_top, cell_width, cell_height, colors)

        # Footer: error or event count
        footer_y = height - 35
        if view.get("error"):
            footer = view["error"]
        else:
            count = sum(len(day["events"]) for day in view["days"] if day["isCurrentMonth"])
            footer = f"{count} events"
        draw.text((24, footer_y), footer, fill=colors["text"], font=self.fonts["small"])

        month_key = f"{view['year']}-{view['month'] + 1:02d}-{theme}"
        return self._save(image, "calendar", f"{key}-{month_key}" if key else month_key)

    def _draw_day(self, draw, day: dict, index: int, top: float, cell_width: float, cell_height: float, colors: dict):
        """Draw one grid cell with its day number and event dots."""
        row, column = divmod(index, 7)
        x = 20 + column * cell_width
        y = top + row * cell_height

        if day["isToday"]:
            draw.rounded_rectangle(
                [x + 4, y + 2, x + cell_width - 4, y + cell_height - 2],
                radius=8,
                fill=colors["bg"],
                outline=colors["primary"],
                width=2,
            )

        if not day["isCurrentMonth"]:
            fill = DIMMED
        elif day["isWeekend"]:
            fill = WEEKEND
        else:
            fill = colors["text"]

        label = str(day["day"])
        label_x = x + (cell_width - self._text_width(draw, label, self.fonts["normal"])) / 2
        draw.text((label_x, y + 8), label, fill=fill, font=self.fonts["normal"])

        # Event dots, at most three per day
        events = day["events"][:3]
        dot_size = 6
        dots_width = len(events) * (dot_size + 4) - 4
        dot_x = x + (cell_width - dots_width) / 2
        dot_y = y + cell_height - 16
        for event in events:
            box = [dot_x, dot_y, dot_x + dot_size, dot_y + dot_size]
            if event["isImportant"]:
                draw.ellipse(box, fill=colors["primary"], outline=colors["text"])
            else:
                draw.ellipse(box, outline=colors["primary"], width=2)
            dot_x += dot_size + 4

    def render_report(
        self,
        snapshot: dict,
        key: str = "latest",
        width: int = 400,
        height: int = 400,
    ) -> tuple[str, str]:
        """
        Render the routine report card.

        Args:
            snapshot: RoutinePlayer.snapshot()
            key: Image identity, usually the session ID
            width: Image width
            height: Image height

        Returns:
            Tuple of (filename, file_path)
        """
        colors = self._colors(snapshot.get("theme", DEFAULT_THEME))
        logger.info("Rendering routine report")

        image = Image.new("RGB", (width, height), colors["bg"])
        draw = ImageDraw.Draw(image)

        title = "NIGHT ROUTINE REPORT" if snapshot.get("variant") == "secondary" else "MORNING ROUTINE REPORT"
        draw.text((24, 20), title, fill=colors["text"], font=self.fonts["title"])
        draw.line([24, 55, width - 24, 55], fill=colors["primary"], width=3)

        # Completed routines grid, four per row
        completed = snapshot.get("completed_routines", [])
        cell = (width - 48) / 4
        for index, routine in enumerate(completed[:12]):
            row, column = divmod(index, 4)
            x = 24 + column * cell
            y = 70 + row * 60
            draw.rounded_rectangle(
                [x + 4, y, x + cell - 4, y + 52], radius=10, fill="white", outline=colors["primary"]
            )
            label = routine.get("emoji") or routine.get("name", "")[:2]
            label_x = x + (cell - self._text_width(draw, label, self.fonts["title"])) / 2
            draw.text((label_x, y + 14), label, fill=colors["text"], font=self.fonts["title"])

        summary = f"{snapshot.get('completed_count', 0)} / {snapshot.get('total_count', 0)} completed"
        draw.text((24, height - 90), summary, fill=colors["text"], font=self.fonts["normal"])

        mood = snapshot.get("mood") or "-"
        draw.text((24, height - 60), f"Mood: {mood}", fill=colors["text"], font=self.fonts["normal"])

        return self._save(image, "report", key)

    def discard_report(self, key: str):
        """Delete a session's report image, if rendered."""
        path = self.output_dir / f"{image_name('report', key)}.png"
        path.unlink(missing_ok=True)
