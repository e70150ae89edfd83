"""Convert an ha-bridge ``device.db`` export into a webhookbridge configuration.

Usage:
    webhookbridge-migrate device.db config.json
    webhookbridge-migrate device.db              # writes device-migrated.json
"""

import argparse
import json
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import unquote

from webhookbridge.bridge.config import DEFAULT_PLATFORM_NAME
from webhookbridge.bridge.http import DEFAULT_TIMEOUT_MS
from webhookbridge.classify import classify_device, descriptor_from_legacy
from webhookbridge.devices.types import (
    COVER_TYPES,
    GROUP_BRIGHTNESS,
    GROUP_COLOR,
    HANDLER_GROUPS,
    LIGHT_TYPES,
    SLOT_BRIGHTNESS,
    SLOT_COLOR_HUE,
    SLOT_COVER_POSITION,
    SLOT_OFF,
    SLOT_ON,
    DeviceType,
)
from webhookbridge.exceptions import MigrationError

logger = logging.getLogger(__name__)

MAP_ID_PLACEHOLDER = "${device.mapId}"
_HTTP_VERB_MARKER = re.compile(r"""["']httpVerb["']\s*:\s*["'](POST|PUT)["']""")


@dataclass
class RecordOutcome:
    """What happened to one legacy record."""

    name: str
    accepted: bool
    device_type: Optional[DeviceType] = None
    reason: str = ""


@dataclass
class MigrationResult:
    config: dict[str, Any]
    converted_count: int = 0
    skipped_count: int = 0
    outcomes: list[RecordOutcome] = field(default_factory=list)


def generate_unique_id(name: str) -> str:
    """Derive a stable id from a device name.

    Rolling ``hash * 31 + unit`` over the UTF-16 code units of the name,
    truncated to 32 bits and rendered as 8 lowercase hex digits.
    """
    encoded = name.encode("utf-16-le")
    value = 0
    for index in range(0, len(encoded), 2):
        unit = encoded[index] | (encoded[index + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    return f"webhook-{value:08x}"


def parse_url_array(value: Any) -> Optional[str]:
    """Return the URL of the first entry of an ha-bridge URL array.

    The field is usually a JSON string like ``[{"item": "http://...", "type": "..."}]``
    but an already decoded list is accepted too. Anything else yields None.
    """
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if not isinstance(value, list) or not value:
        return None
    first = value[0]
    if isinstance(first, Mapping) and isinstance(first.get("item"), str) and first["item"]:
        return first["item"]
    return None


def detect_method(raw: Any) -> str:
    """GET, unless the raw legacy field carries an ``httpVerb`` POST/PUT marker."""
    text = raw if isinstance(raw, str) else json.dumps(raw)
    match = _HTTP_VERB_MARKER.search(text or "")
    return match.group(1) if match else "GET"


def parse_endpoint(url: str, record: Mapping[str, Any], raw: Any = None) -> dict[str, str]:
    """Build a command entry from a legacy URL.

    Args:
        url: URL taken from the record's URL array
        record: The legacy record (supplies ``mapId``)
        raw: The untouched field value, inspected for a method marker

    Returns:
        ``{"method": ..., "url": ...}``
    """
    clean_url = unquote(url.strip())
    map_id = record.get("mapId")
    if map_id and MAP_ID_PLACEHOLDER in clean_url:
        clean_url = clean_url.replace(MAP_ID_PLACEHOLDER, str(map_id))
    return {"method": detect_method(raw if raw is not None else url), "url": clean_url}


def _dim_slot(device_type: DeviceType) -> Optional[str]:
    if device_type in COVER_TYPES:
        return SLOT_COVER_POSITION
    if device_type in LIGHT_TYPES and GROUP_BRIGHTNESS in HANDLER_GROUPS[device_type]:
        return SLOT_BRIGHTNESS
    return None


def convert_record(record: Mapping[str, Any]) -> tuple[str, Optional[dict[str, Any]], RecordOutcome]:
    """Convert a single legacy record.

    Returns:
        ``(name, webhook or None, outcome)``
    """
    name = record.get("name") or f"Device {record.get('id')}"

    if record.get("inactive") is True:
        return name, None, RecordOutcome(name, False, reason="inactive")

    device_type = classify_device(descriptor_from_legacy({**record, "name": name}))

    urls = {
        key: parse_url_array(record.get(key)) for key in ("onUrl", "offUrl", "dimUrl", "colorUrl")
    }
    if not (urls["onUrl"] or urls["offUrl"] or urls["dimUrl"]):
        return name, None, RecordOutcome(name, False, device_type, reason="no URLs")

    uniqueid = record.get("uniqueid")
    if uniqueid:
        unique_id = "habridge-" + str(uniqueid).replace(":", "")
    else:
        unique_id = generate_unique_id(name)

    webhook: dict[str, Any] = {"deviceType": device_type.value, "uniqueId": unique_id}

    def endpoint(key: str) -> dict[str, str]:
        return parse_endpoint(urls[key], record, record.get(key))

    if urls["onUrl"]:
        webhook[SLOT_ON] = endpoint("onUrl")
    if urls["offUrl"]:
        webhook[SLOT_OFF] = endpoint("offUrl")
    if urls["dimUrl"]:
        dim_slot = _dim_slot(device_type)
        if dim_slot:
            webhook[dim_slot] = endpoint("dimUrl")
    if urls["colorUrl"] and GROUP_COLOR in HANDLER_GROUPS[device_type]:
        webhook[SLOT_COLOR_HUE] = endpoint("colorUrl")

    return name, webhook, RecordOutcome(name, True, device_type)


def convert_devices(records: list[Mapping[str, Any]]) -> MigrationResult:
    """Convert every legacy record; failures are counted as skipped.

    Args:
        records: Parsed ``device.db`` array

    Returns:
        MigrationResult with the configuration document and per-record outcomes
    """
    result = MigrationResult(
        config={
            "name": DEFAULT_PLATFORM_NAME,
            "whiteList": [],
            "blackList": [],
            "timeout": DEFAULT_TIMEOUT_MS,
            "webhooks": {},
        }
    )

    for record in records:
        try:
            if not isinstance(record, Mapping):
                raise MigrationError(f"record is not an object: {record!r}")
            name, webhook, outcome = convert_record(record)
        except Exception as e:
            label = record.get("name") if isinstance(record, Mapping) else None
            logger.warning(f"Error processing '{label}': {e}")
            outcome = RecordOutcome(str(label), False, reason=str(e))
            webhook = None
            name = None

        result.outcomes.append(outcome)
        if webhook is None:
            result.skipped_count += 1
            continue
        result.config["webhooks"][name] = webhook
        result.converted_count += 1

    return result


def load_records(path: Path) -> list[Any]:
    """Read a ``device.db`` export.

    Raises:
        MigrationError: If the file is missing, not JSON, or not an array
    """
    if not path.exists():
        raise MigrationError(f"Input file '{path}' not found")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise MigrationError(f"Cannot read {path}: {e}") from e
    if not isinstance(data, list):
        raise MigrationError("Input file is not a JSON array of devices")
    return data


def default_output_path(input_path: Path) -> Path:
    return input_path.with_name(f"{input_path.stem}-migrated.json")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Convert an ha-bridge device.db export to a webhookbridge config",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("input", nargs="?", default=None, help="ha-bridge device.db file (JSON array)")
    parser.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Output config file (default: <input>-migrated.json next to the input)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    if args.input is None:
        print(__doc__.strip(), file=sys.stderr)
        return 1
    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else default_output_path(input_path)

    print("=== ha-bridge to webhookbridge migration ===")
    print(f"Input:  {input_path}")
    print(f"Output: {output_path}")
    print()

    try:
        records = load_records(input_path)
    except MigrationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = convert_devices(records)
    for outcome in result.outcomes:
        if outcome.accepted:
            print(f"✓ {outcome.name} → {outcome.device_type.value}")
        else:
            print(f"⊘ Skipping ({outcome.reason}): {outcome.name}")

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(result.config, f, indent=2, ensure_ascii=False)

    print()
    print("✓ Migration complete!")
    print(f"  Converted: {result.converted_count} devices")
    print(f"  Skipped:   {result.skipped_count} devices")
    print(f"  Output:    {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
