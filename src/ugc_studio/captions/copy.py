"""
Marketing copy for the UGC caption.
Pure string assembly from a label set, an optional brand and a style tag.
"""
import re
from typing import Iterable, Optional

from ..domain.models import Style

INTROS = {
    Style.CASUAL: "Hi team, here is my ultra comfy outfit of the day!",
    Style.MINIMAL: "Clean mood today, all about well-cut essentials.",
    Style.LUXURY: "Spotlight on a premium piece that brings all the glow to the look.",
    Style.STREET: "Street style of the day, effortless and super stylish.",
    Style.ROMANTIC: "Feeling a soft and romantic look, let me show you!",
}

STYLE_LINES = {
    Style.CASUAL: "Ready to run all my cozy little errands.",
    Style.MINIMAL: "Everything is ultra clean, no fuss, just chic.",
    Style.LUXURY: "Every detail breathes quality, it is absolutely stunning.",
    Style.STREET: "It matches my sneakers of the moment and gives a really cool vibe.",
    Style.ROMANTIC: "The volumes are light, the perfect combo for a delicate mood.",
}

GENERIC_BODY = "The silhouette stays fluid and comfortable, perfect to move all day long."
OUTRO = "Tell me what you think and stay tuned for the next one!"


def normalize_label(label: str) -> str:
    """``"running_shoe  "`` -> ``"Running Shoe"``."""
    cleaned = re.sub(r"\s+", " ", label.replace("_", " ")).strip()
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), cleaned)


def brand_hashtag(brand: Optional[str]) -> str:
    """Hashtag form of a brand: non-alphanumerics stripped, ``#`` prefix. Empty if nothing is left."""
    if not brand:
        return ""
    tag = "".join(ch for ch in brand if ch.isalnum())
    return f"#{tag}" if tag else ""


def _body_line(labels: list[str]) -> str:
    if not labels:
        return GENERIC_BODY
    items = [label.lower() for label in labels]
    if len(items) == 1:
        listed = f"the {items[0]}"
    else:
        listed = f"{', '.join(items[:-1])} and the {items[-1]}"
    return f"We love {listed}, super flattering and mega comfortable."


def build_caption(labels: Iterable[str], brand: Optional[str] = None, style: "Style | str | None" = None) -> str:
    """
    Assemble the caption text fed to the video synthesizer.

    Args:
        labels: Detected labels (unordered; sorted for determinism)
        brand: Optional brand name mentioned before the body line
        style: Style tag (unknown tags fall back to casual)

    Returns:
        Caption string; identical inputs always give identical output
    """
    resolved = Style.coerce(style)
    ordered = sorted({normalize_label(label) for label in labels if label and label.strip()}, key=str.casefold)
    mention = f"{brand.strip()} " if brand and brand.strip() else ""
    return f"{INTROS[resolved]} {mention}{_body_line(ordered)} {STYLE_LINES[resolved]} {OUTRO}"
