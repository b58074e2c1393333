from marshmallow import ValidationError

from utils.security import is_utf8


def utf8_text(value):
    """Reject strings holding lone surrogates: JSON can carry them, UTF-8 cannot."""
    if not is_utf8(value):
        raise ValidationError("Must be valid UTF-8 text.")


def strip_strings(data, names):
    """pre_load helper: trim the named string fields of a request body."""
    if isinstance(data, dict):
        data = dict(data)
        for name in names:
            if isinstance(data.get(name), str):
                data[name] = data[name].strip()
    return data
