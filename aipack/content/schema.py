"""
The table of persistent metadata attributes recognized for each kind of content object.

This table is shared by the content stores, which only accept these attributes, and by the 
packers, which pack and restore exactly these attributes.  Any change to the persistent schema 
must be made here, and :py:data:`SCHEMA_VERSION` must be incremented.  Objects whose kind is not
listed (e.g. items) carry open-ended metadata.
"""
from collections import OrderedDict

from .constants import COMMUNITY, COLLECTION

SCHEMA_VERSION = "1"

FIELDS = OrderedDict([
    (COMMUNITY, (
        "name",
        "short_description",
        "introductory_text",
        "copyright_text",
        "side_bar_text"
    )),
    (COLLECTION, (
        "name",
        "short_description",
        "introductory_text",
        "provenance_description",
        "license",
        "copyright_text",
        "side_bar_text"
    ))
])

def fields_for(objtype):
    """
    return the ordered list of metadata attributes recognized for the given object type, or None
    if the object type does not have a fixed list.
    """
    return FIELDS.get(objtype)

def is_recognized(objtype, field):
    """
    return True if the given field is a legal metadata attribute for the given object type
    """
    fields = FIELDS.get(objtype)
    if fields is None:
        return bool(field)
    return field in fields
