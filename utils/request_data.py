"""
Helpers for reading JSON request bodies
"""
from flask import request


def as_dict(value):
    """value when it is a JSON object, otherwise an empty dict"""
    return value if isinstance(value, dict) else {}


def json_body():
    """Request body as a dict; missing, malformed and non-object bodies give {}"""
    return as_dict(request.get_json(silent=True))


def text_field(data, name, default=''):
    """String field of a JSON object, or None when the client sent another type"""
    value = data.get(name, default)
    if value is None:
        return default
    return value if isinstance(value, str) else None
