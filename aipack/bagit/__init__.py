"""
Support for staging AIP contents in BagIt-style bags and for serializing them into archive files
"""
from .exceptions import BagException, BagSerializationError, BagValidationError
from .bag import Bag, FlatWriter, FlatReader, XmlWriter, XmlReader, Value
from .serialize import Serializer, DefaultSerializer
