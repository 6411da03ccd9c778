from enum import Enum
from datetime import datetime, date
from sqlalchemy.inspection import inspect

HIDDEN_COLUMNS = {"password_hash"}

def to_dict(model_instance, include_hidden=False):
    output = {}
    mapper = inspect(model_instance.__class__)

    for column in mapper.columns:
        key = column.key
        value = getattr(model_instance, key)

        if not include_hidden and key in HIDDEN_COLUMNS:
            continue

        if isinstance(value, Enum):
            output[key] = value.value
        elif isinstance(value, (datetime, date)):
            output[key] = value.isoformat()
        else:
            output[key] = value

    return output
