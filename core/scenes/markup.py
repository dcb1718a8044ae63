"""
HTML building blocks for still-frame scenes.

Pages are rendered at exactly the project resolution; every element is
absolutely positioned inside a full-frame container.
"""

import base64
import html
from pathlib import Path
from typing import Callable, Optional, Union

from core.models.project import Background, ImageContent, ImageFit, Position, TextContent

DEFAULT_BACKGROUND = "#000000"

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def escape_text(text: str) -> str:
    """Escape text for HTML, keeping line breaks."""
    return html.escape(text, quote=True).replace("\n", "<br>")


def image_data_uri(path: Path) -> str:
    """Embed an image file as a base64 data URI."""
    mime = MIME_TYPES.get(path.suffix.lower(), "image/png")
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def background_css(
    background: Optional[Background],
    resolve_image: Callable[[str], Path]
) -> str:
    """CSS ``background`` value for a scene background."""
    if background is None:
        return DEFAULT_BACKGROUND
    if background.type == "image":
        uri = image_data_uri(resolve_image(background.value))
        return f'url("{uri}") center/cover no-repeat'
    # color and gradient values are CSS already
    return background.value


def _axis(value: Union[float, str]) -> str:
    return "50%" if value == "center" else f"{value}px"


def position_css(position: Position) -> str:
    """Absolute placement; "center" centers the element on that axis."""
    translate_x = "-50%" if position.x == "center" else "0"
    translate_y = "-50%" if position.y == "center" else "0"
    return (
        f"position:absolute;left:{_axis(position.x)};top:{_axis(position.y)};"
        f"transform:translate({translate_x},{translate_y});"
    )


def text_element(content: TextContent) -> str:
    style = content.style
    css = [
        position_css(content.position),
        f"font-size:{style.font_size}px;",
        f"color:{style.color};",
        f"font-family:{style.font_family};",
        "white-space:pre-wrap;",
        "max-width:90%;",
    ]
    if style.font_weight:
        css.append(f"font-weight:{style.font_weight};")
    if style.text_align:
        css.append(f"text-align:{style.text_align};")
    return f'<div class="text" style="{"".join(css)}">{escape_text(content.text)}</div>'


def image_element(content: ImageContent, src_uri: str) -> str:
    """Full-frame image; ``position`` sets the object position within it."""
    fit = content.fit.value if isinstance(content.fit, ImageFit) else content.fit
    css = (
        "position:absolute;left:0;top:0;width:100%;height:100%;"
        f"object-fit:{fit};"
        f"object-position:{_axis(content.position.x)} {_axis(content.position.y)};"
    )
    return f'<img class="image" src="{src_uri}" style="{css}">'


def layer_element(inner: str, z_index: int, opacity: Optional[float]) -> str:
    css = f"position:absolute;inset:0;z-index:{z_index};"
    if opacity is not None:
        css += f"opacity:{opacity};"
    return f'<div class="layer" style="{css}">{inner}</div>'


def build_page(body: str, width: int, height: int, background: str) -> str:
    """Complete HTML document sized to the frame."""
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
  html, body {{ margin: 0; padding: 0; }}
  body {{ width: {width}px; height: {height}px; overflow: hidden; }}
  .frame {{ position: relative; width: {width}px; height: {height}px; background: {background}; overflow: hidden; }}
</style>
</head>
<body>
<div class="frame">{body}</div>
</body>
</html>"""
