"""
Document-style identifiers shared by every model.
"""
from bson import ObjectId


def generate_object_id():
    return str(ObjectId())


def is_valid_object_id(value):
    """Check that value is a 24-character hex ObjectId string."""
    return isinstance(value, str) and ObjectId.is_valid(value)
