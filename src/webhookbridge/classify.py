"""Map a loosely described device onto the device type taxonomy.

The same cascade serves live configuration (webhooks without an explicit
``deviceType``) and the offline ha-bridge migration, so a device is always
classified the same way regardless of where it came from.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from webhookbridge.devices.types import (
    SLOT_BRIGHTNESS,
    SLOT_COLOR_HUE,
    SLOT_COLOR_SATURATION,
    SLOT_COLOR_XY,
    SLOT_COVER_POSITION,
    SLOT_COVER_TILT,
    DeviceType,
)

# Name hints, matched case-insensitively as substrings. Legacy device
# databases often carry Italian names, hence the mixed vocabulary.
SCENE_HINTS = ("scene", "scena")
VACUUM_HINTS = ("vacuum", "deebot", "roomba")
COVER_HINTS = ("blind", "cover", "curtain", "shutter", "tapparella", "tenda", "tende", "lamelle")
OUTLET_HINTS = ("outlet", "socket", "presa")
POSITION_HINTS = ("position", "blind", "cover")

DECLARED_TYPES: dict[str, DeviceType] = {
    "switch": DeviceType.SWITCH,
    "outlet": DeviceType.OUTLET,
    "light": DeviceType.LIGHT,
    "scene": DeviceType.SCENE,
    "dimmer": DeviceType.DIMMABLE_LIGHT,
    "cover": DeviceType.COVER_LIFT,
    "blind": DeviceType.COVER_LIFT,
    "lock": DeviceType.DOOR_LOCK,
    "thermostat": DeviceType.THERMOSTAT_AUTO,
}


@dataclass(frozen=True)
class DeviceDescriptor:
    """What is known about a device before it has a type."""

    name: str
    declared_type: Optional[str] = None
    has_dimming: bool = False
    has_color: bool = False
    has_position: bool = False
    hints: Mapping[str, str] = field(default_factory=dict)


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(needle in text for needle in needles)


def classify_device(descriptor: DeviceDescriptor) -> DeviceType:
    """Classify a device; the first matching rule wins.

    Name hints are checked before the declared type because legacy sources
    often mis-tag the type but carry the real intent in the name.

    Args:
        descriptor: Device name, declared type, capabilities and hints

    Returns:
        The device type to create
    """
    name = descriptor.name.lower()
    declared = (descriptor.declared_type or "").strip().lower()

    if _contains_any(name, SCENE_HINTS):
        return DeviceType.SCENE
    if _contains_any(name, VACUUM_HINTS):
        return DeviceType.SWITCH  # on/off control only
    if _contains_any(name, COVER_HINTS):
        return DeviceType.COVER_LIFT
    if _contains_any(name, OUTLET_HINTS):
        return DeviceType.OUTLET

    if declared == "scene":
        return DeviceType.SCENE
    if descriptor.has_color:
        return DeviceType.EXTENDED_COLOR_LIGHT
    if descriptor.has_dimming:
        hint_text = " ".join(str(value).lower() for value in descriptor.hints.values() if value)
        if descriptor.has_position or _contains_any(hint_text, POSITION_HINTS):
            return DeviceType.COVER_LIFT
        return DeviceType.DIMMABLE_LIGHT

    return DECLARED_TYPES.get(declared, DeviceType.SWITCH)


def descriptor_from_webhook(name: str, webhook: Mapping[str, Any]) -> DeviceDescriptor:
    """Build a descriptor from a raw webhook configuration entry.

    Capabilities are inferred from the command slots the entry defines.
    """
    return DeviceDescriptor(
        name=name,
        declared_type=webhook.get("type"),
        has_dimming=SLOT_BRIGHTNESS in webhook or SLOT_COVER_POSITION in webhook,
        has_color=any(slot in webhook for slot in (SLOT_COLOR_HUE, SLOT_COLOR_SATURATION, SLOT_COLOR_XY)),
        has_position=SLOT_COVER_POSITION in webhook or SLOT_COVER_TILT in webhook,
    )


def descriptor_from_legacy(record: Mapping[str, Any]) -> DeviceDescriptor:
    """Build a descriptor from an ha-bridge ``device.db`` record."""
    map_id = record.get("mapId")
    return DeviceDescriptor(
        name=record.get("name") or "",
        declared_type=record.get("deviceType"),
        has_dimming=bool(record.get("dimUrl")),
        has_color=bool(record.get("colorUrl")),
        hints={"mapId": map_id} if isinstance(map_id, str) else {},
    )
