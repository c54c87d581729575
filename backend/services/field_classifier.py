"""
Field Classifier

Decides whether a parameter is static configuration or a data mapping
that references runtime values.
"""

from typing import Any, Dict, Tuple

# Expression syntax shared by both platforms plus n8n item/node references
DYNAMIC_MARKERS = ("{{", "$json", "$node")


def is_mapper_field(key: str, value: Any) -> bool:
    """True when the value is text containing a dynamic expression marker."""
    if isinstance(value, str):
        return any(marker in value for marker in DYNAMIC_MARKERS)
    return False


def split_parameters(parameters: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split one parameter bag into (configuration, mapper), keeping key order."""
    configuration: Dict[str, Any] = {}
    mapper: Dict[str, Any] = {}
    for key, value in parameters.items():
        if is_mapper_field(key, value):
            mapper[key] = value
        else:
            configuration[key] = value
    return configuration, mapper


def merge_parameters(parameters: Dict[str, Any], mapper: Dict[str, Any]) -> Dict[str, Any]:
    # mapper entries win on collision
    return {**parameters, **mapper}
