"""Newznab category and series detection from release titles."""

import re

CATEGORY_IDS = {
    "TV": "5000",
    "TV_SD": "5030",
    "TV_HD": "5040",
    "TV_UHD": "5060",
    "TV_ANIME": "5070",
}

# Checked in order on the lowercased title with ASCII word boundaries; first match wins
RESOLUTION_PATTERNS = (
    ("TV_UHD", re.compile(r"\b(2160p|4k|uhd)\b", re.ASCII)),
    ("TV_HD", re.compile(r"\b(1080p|720p|web-dl|hdtv)\b", re.ASCII)),
    ("TV_SD", re.compile(r"\b(480p|360p|240p|sdtv)\b", re.ASCII)),
)

UNKNOWN_SERIES = "Unknown Series"

_SLASH_TITLE_RE = re.compile(r"\]\s*([^\]]+?)\s*/\s*([^/]+?)\s*-")
_BRACKETED_NAME_RE = re.compile(r"\]\[([^\]]+)\]")
_LEADING_BRACKET_RE = re.compile(r"^[^\[]+\[([^\]]+)\]")
_EPISODE_BRACKET_RE = re.compile(r"\[[0-9]+\]")
_EPISODE_ORDINAL_RE = re.compile(r"第[0-9]+[話话]")
_RESOLUTION_RE = re.compile(r"[0-9]+p", re.IGNORECASE)
_ANY_BRACKET_RE = re.compile(r"\[.*?\]")


class CategoryClassifier:
    """Derive Torznab categories and a series name from a release title.

    Args:
        slash_titles: Also recognize ``[Group] 中文 / English - 01`` titles,
            preferring the first (Chinese) name.
    """

    def __init__(self, slash_titles: bool = False) -> None:
        self.slash_titles = slash_titles

    def detect_categories(self, title: str) -> list[str]:
        """Return ``[TV, <resolution>, TV/Anime]`` category ids for a title.

        Titles without a recognizable resolution are classified as HD.
        """
        lower_title = title.lower()
        resolution = CATEGORY_IDS["TV_HD"]
        for key, pattern in RESOLUTION_PATTERNS:
            if pattern.search(lower_title):
                resolution = CATEGORY_IDS[key]
                break
        return [CATEGORY_IDS["TV"], resolution, CATEGORY_IDS["TV_ANIME"]]

    def extract_series_name(self, title: str) -> str:
        """Best-effort series name, ``"Unknown Series"`` when none is found."""
        if self.slash_titles:
            match = _SLASH_TITLE_RE.search(title)
            if match:
                for name in match.groups():
                    if name.strip():
                        return name.strip()

        match = _BRACKETED_NAME_RE.search(title)
        if match:
            name = _EPISODE_BRACKET_RE.sub("", match.group(1))
            name = _EPISODE_ORDINAL_RE.sub("", name)
            name = _RESOLUTION_RE.sub("", name, count=1)
            name = _ANY_BRACKET_RE.sub("", name).strip()
            if name:
                return name

        match = _LEADING_BRACKET_RE.search(title)
        if match:
            return match.group(1).strip()

        return UNKNOWN_SERIES
