# cryptoledger/utils/model_utils.py
from typing import Any, Dict, Iterable, List

from cryptoledger import config


def strip_falsy_except(to_strip: Dict[str, Any], but_not: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Returns a copy of a dict with all falsy members removed, except for
    those named in but_not. Insertion order is preserved.
    """
    keep = set(but_not)
    return {key: val for key, val in to_strip.items() if key in keep or val}


def split_and_trim(work: str) -> List[str]:
    return [part.strip() for part in work.split() if part.strip()]


def is_connector(token: str) -> bool:
    return token in config.CONNECTORS


def objects_to_dict(items: Dict[str, Any]) -> Dict[str, Any]:
    return {key: val.to_object() for key, val in items.items()}
