"""
Generic Grouping Rules

Canonicalizers for fields whose raw values carry version or model noise
("Android 10", "iPhone 14 Pro", "Toyota Corolla"). Generic grouping buckets
rows by the canonical value instead of the raw one.
"""

from typing import Callable, Dict, Optional, Tuple

Canonicalizer = Callable[[str], str]

# Checked in order; the first needle found in the lower-cased value wins
DEVICE_FAMILIES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("android",), "Android"),
    (("ios", "iphone", "ipad"), "iOS"),
    (("windows",), "Windows"),
    (("feature phone",), "Feature phone"),
    (("proprietary",), "Proprietary OS"),
)


def canonical_device(value: str) -> str:
    """Map a device string to its OS family, or return it unchanged."""
    lowered = value.lower()
    for needles, family in DEVICE_FAMILIES:
        if any(needle in lowered for needle in needles):
            return family
    return value


def canonical_car(value: str) -> str:
    """Keep only the manufacturer, i.e. the first whitespace-delimited token."""
    parts = value.split()
    return parts[0] if parts else value


GENERIC_GROUPINGS: Dict[str, Canonicalizer] = {
    "device": canonical_device,
    "car": canonical_car,
}


def get_canonicalizer(field_name: str) -> Optional[Canonicalizer]:
    return GENERIC_GROUPINGS.get(field_name)


def canonicalize(field_name: str, value):
    """Canonical form of ``value``; None and non-string values pass through."""
    rule = GENERIC_GROUPINGS.get(field_name)
    if rule is None or not isinstance(value, str):
        return value
    return rule(value)
