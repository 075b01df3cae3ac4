"""Episode number extraction from free-text release titles.

Titles are matched against an ordered cascade of rules. Each rule is a
regular expression plus zero or more validators; the first rule whose
selected match passes every validator decides the episode number.
"""

import re
from collections.abc import Callable, Sequence

import msgspec

# Validator signature: (title, match, value) -> True to accept
# Patterns match ASCII digits only; full-width digits are not episode numbers
EpisodeValidator = Callable[[str, re.Match[str], int], bool]

MAX_EPISODE_NUMBER = 10000


def reject_resolution_suffix(title: str, match: re.Match[str], value: int) -> bool:
    """Reject numbers directly followed by ``p``/``P`` (1080p, 720 P)."""
    rest = title[match.end() :].lstrip()
    return not rest.startswith(("p", "P"))


def reject_above_ceiling(title: str, match: re.Match[str], value: int) -> bool:
    """Reject numbers too large to be an episode count (years, ids)."""
    return value <= MAX_EPISODE_NUMBER


class EpisodeRule(msgspec.Struct, frozen=True):
    """One step of the extraction cascade.

    Attributes:
        pattern: Compiled regex with the episode number in group 1.
        validators: Checks applied to the selected match.
        use_last_match: Select the last match in the title instead of the first.
    """

    pattern: re.Pattern[str]
    validators: tuple[EpisodeValidator, ...] = ()
    use_last_match: bool = False

    def apply(self, title: str) -> int | None:
        matches = list(self.pattern.finditer(title))
        if not matches:
            return None
        match = matches[-1] if self.use_last_match else matches[0]
        try:
            value = int(match.group(1))
        except (TypeError, ValueError):
            return None
        if all(validator(title, match, value) for validator in self.validators):
            return value
        return None


FALLBACK_RULE = EpisodeRule(
    pattern=re.compile(r"([0-9]+)"),
    validators=(reject_resolution_suffix, reject_above_ceiling),
    use_last_match=True,
)

DMHY_EPISODE_RULES: tuple[EpisodeRule, ...] = (
    EpisodeRule(re.compile(r"\(([0-9]+)\)")),  # (1151)
    EpisodeRule(re.compile(r"\[([0-9]+)\]")),  # [1151]
    EpisodeRule(re.compile(r"第([0-9]+)話")),
    EpisodeRule(re.compile(r"第([0-9]+)话")),
    FALLBACK_RULE,
)

ACGRIP_EPISODE_RULES: tuple[EpisodeRule, ...] = (
    EpisodeRule(re.compile(r"- EP ([0-9]+)", re.IGNORECASE)),
    EpisodeRule(re.compile(r"- SP([0-9]+)", re.IGNORECASE)),  # specials
    EpisodeRule(re.compile(r"- ([0-9]+) \(")),
    EpisodeRule(re.compile(r"- ([0-9]+)(?:\s|$)")),
    FALLBACK_RULE,
)


def extract_episode(title: str, rules: Sequence[EpisodeRule]) -> int | None:
    """Return the episode number found in ``title``, or None.

    Args:
        title: Release title.
        rules: Ordered cascade to evaluate.

    Returns:
        Episode number from the first accepting rule, None when no rule
        accepts. Zero is a valid episode number.
    """
    for rule in rules:
        episode = rule.apply(title)
        if episode is not None:
            return episode
    return None
