import re
from typing import Literal

TextDirection = Literal["ltr", "rtl"]

# Hebrew and Arabic blocks plus the Arabic presentation forms
_RTL_CHARS = re.compile(
    "[\u0590-\u05FF\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]"
)
_HTML_TAG = re.compile(r"<[^>]+>")


def detect_text_direction(text: str) -> TextDirection:
    """'rtl' when more than half of the non-space characters are right-to-left."""
    rtl_count = len(_RTL_CHARS.findall(text))
    total = len(re.sub(r"\s", "", text))
    return "rtl" if total > 0 and rtl_count / total > 0.5 else "ltr"


def resolve_text_direction(text: str, setting: str) -> TextDirection:
    if setting == "auto":
        return detect_text_direction(text)
    return "rtl" if setting == "rtl" else "ltr"


def strip_html(value: str) -> str:
    """Plain-text rendering of an Anki field value for terminal output."""
    text = _HTML_TAG.sub("", value).replace("&nbsp;", " ")
    return " ".join(text.split())
