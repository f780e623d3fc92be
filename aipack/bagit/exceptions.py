"""
Exceptions related to building, serializing and reading bags
"""
from ..exceptions import AIPackException

class BagException(AIPackException):
    """
    a base class for exceptions involving the handling of a bag
    """
    def __init__(self, message=None, name=None, cause=None):
        """
        :param str      message:  a description of the problem
        :param str         name:  the name of the bag (or bag file) involved
        :param Exception  cause:  the underlying exception (optional)
        """
        super(BagException, self).__init__(message, cause)
        self.name = name

class BagSerializationError(BagException):
    """
    an exception indicating a failure while serializing a bag into an archive file or 
    while unpacking an archive file into a bag.
    """
    pass

class BagValidationError(BagException):
    """
    an exception indicating that a bag's contents do not match its manifests or that the bag
    is otherwise not a legal BagIt bag.
    """
    pass
