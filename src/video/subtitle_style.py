"""Caption style translation for FFmpeg's ``subtitles`` filter.

Converts the front end's CSS-style colors and caption settings into the ASS
``force_style`` grammar used by libass.
"""

import logging

from src.video.video_config import (
    ASS_ALIGNMENT_BOTTOM_CENTER,
    ASS_COLOR_PREFIX,
    ASS_DEFAULT_ALPHA,
    ASS_SHADOW_NONE,
    DEFAULT_SUBTITLE_FONT,
    AspectProfile,
    SubtitleStyle,
)

logger = logging.getLogger(__name__)


def css_color_to_ass(css_color: str) -> str:
    """Convert ``#RRGGBB`` to the ASS ``&HAABBGGRR`` color token.

    Tokens that already start with ``&H`` are returned unchanged. Anything
    else is sliced as a six-digit hex triplet without validation, so
    malformed input produces a malformed token rather than an exception.

    Examples
    --------
        >>> css_color_to_ass("#FF00CC")
        '&H00CC00FF'

    """
    if css_color.startswith(ASS_COLOR_PREFIX):
        return css_color
    hex_digits = css_color.replace("#", "")
    red = hex_digits[0:2]
    green = hex_digits[2:4]
    blue = hex_digits[4:6]
    return f"{ASS_COLOR_PREFIX}{ASS_DEFAULT_ALPHA}{blue}{green}{red}".upper()


def build_force_style(
    style: SubtitleStyle,
    profile: AspectProfile,
    font_name: str = DEFAULT_SUBTITLE_FONT,
) -> str:
    """Build the ``force_style`` descriptor for a caption style.

    The vertical margin comes from the aspect profile so captions sit at the
    same relative height in portrait and landscape output.
    """
    parts = [
        f"FontName={font_name}",
        f"FontSize={style.font_size}",
        f"PrimaryColour={css_color_to_ass(style.font_color)}",
        f"OutlineColour={css_color_to_ass(style.outline_color)}",
        f"Outline={style.outline_width}",
        f"Shadow={ASS_SHADOW_NONE}",
        f"Alignment={ASS_ALIGNMENT_BOTTOM_CENTER}",
        f"MarginV={profile.margin_v}",
    ]
    force_style = ",".join(parts)
    logger.debug(f"Subtitle force_style for {profile.ratio}: {force_style}")
    return force_style
