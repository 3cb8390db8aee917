"""Conversion between Python values and Firestore REST ``Value`` JSON."""

import base64
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def _parse_timestamp(value: str) -> datetime:
    # The emulator sends nanosecond precision; datetime keeps microseconds
    text = value.rstrip('Z')
    if '.' in text:
        whole, fraction = text.split('.', 1)
        text = f"{whole}.{fraction[:6].ljust(6, '0')}"
        parsed = datetime.strptime(text, '%Y-%m-%dT%H:%M:%S.%f')
    else:
        parsed = datetime.strptime(text, '%Y-%m-%dT%H:%M:%S')
    return parsed.replace(tzinfo=timezone.utc)


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a Python value as a Firestore Value

    Raises:
        TypeError: If the value has no Firestore representation
    """
    if value is None:
        return {'nullValue': None}
    if isinstance(value, bool):
        return {'booleanValue': value}
    if isinstance(value, int):
        return {'integerValue': str(value)}
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return {'integerValue': str(int(value))}
        return {'doubleValue': float(value)}
    if isinstance(value, float):
        return {'doubleValue': value}
    if isinstance(value, str):
        return {'stringValue': value}
    if isinstance(value, datetime):
        return {'timestampValue': _format_timestamp(value)}
    if isinstance(value, (bytes, bytearray)):
        return {'bytesValue': base64.b64encode(bytes(value)).decode('ascii')}
    if isinstance(value, dict):
        return {'mapValue': {'fields': encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {'arrayValue': {'values': [encode_value(item) for item in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(value: Dict[str, Any]) -> Any:
    """Decode a Firestore Value into a Python value

    Raises:
        ValueError: If the value type is not recognised
    """
    if 'nullValue' in value:
        return None
    if 'booleanValue' in value:
        return value['booleanValue']
    if 'integerValue' in value:
        return int(value['integerValue'])
    if 'doubleValue' in value:
        return float(value['doubleValue'])
    if 'stringValue' in value:
        return value['stringValue']
    if 'timestampValue' in value:
        return _parse_timestamp(value['timestampValue'])
    if 'bytesValue' in value:
        return base64.b64decode(value['bytesValue'])
    if 'referenceValue' in value:
        return value['referenceValue']
    if 'geoPointValue' in value:
        point = value['geoPointValue']
        return (point.get('latitude', 0.0), point.get('longitude', 0.0))
    if 'mapValue' in value:
        return decode_fields(value['mapValue'].get('fields', {}))
    if 'arrayValue' in value:
        return [decode_value(item) for item in value['arrayValue'].get('values', [])]
    raise ValueError(f"Unknown Firestore value: {value}")


def decode_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}
