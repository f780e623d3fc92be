"""
Exceptions raised by the aipack package
"""

__all__ = [ 'AIPackException', 'ConfigurationException', 'StateException', 'MissingArchive',
            'PayloadLengthMismatch', 'UnsupportedOperation', 'NotAuthorized', 'ObjectNotFound' ]

class AIPackException(Exception):
    """
    a general base class for exceptions that occur while packing or unpacking content
    """
    def __init__(self, message=None, cause=None):
        """
        create the exception
        :param str   message:  a description of the problem; if not provided, one will be 
                               derived from the cause
        :param Exception cause:  an underlying exception that triggered this one (optional)
        """
        if not message:
            if cause:
                message = str(cause)
            else:
                message = "Unknown AIP packaging error"
        super(AIPackException, self).__init__(message)
        self.cause = cause

class ConfigurationException(AIPackException):
    """
    an exception indicating an invalid or missing configuration parameter
    """
    pass

class StateException(AIPackException):
    """
    an exception indicating that an operation was attempted on an object (e.g. a Bag) that is not 
    in a state that allows it.
    """
    pass

class MissingArchive(AIPackException):
    """
    an exception indicating that an unpack operation was requested without an (existing) archive 
    to unpack.  The ``handle`` attribute identifies the object that was the intended target.
    """
    def __init__(self, objtype, handle, message=None):
        if not message:
            message = "Missing archive for %s: %s" % (objtype, handle)
        super(MissingArchive, self).__init__(message)
        self.object_type = objtype
        self.handle = handle

class PayloadLengthMismatch(AIPackException):
    """
    an exception indicating that the number of bytes available for a payload did not match its 
    declared length.
    """
    def __init__(self, name, expected, actual, message=None):
        if not message:
            message = "%s: payload length mismatch: expected %d bytes, got %d" % (name, expected, actual)
        super(PayloadLengthMismatch, self).__init__(message)
        self.payload = name
        self.expected = expected
        self.actual = actual

class UnsupportedOperation(AIPackException, NotImplementedError):
    """
    an exception indicating that a requested capability is not supported by the object it was 
    requested of.
    """
    def __init__(self, operation, message=None):
        if not message:
            message = "Not supported: %s" % operation
        super(UnsupportedOperation, self).__init__(message)
        self.operation = operation

class NotAuthorized(AIPackException):
    """
    an exception indicating that the user attempted an operation that they are not authorized to 
    """
    def __init__(self, who=None, op=None, message=None):
        """
        create the exception
        :param str who:     the identifier of the user who requested the operation
        :param str op:      a brief phrase or term identifying the unauthorized operation. 
        :param str message: the message describing why the exception was raised; if not given,
                            a default message is constructed from `who` and `op`.
        """
        self.user_id = who
        self.operation = op
        if not message:
            if not op:
                op = "effect an unspecified action"
            message = "User "
            if who:
                message += who + " "
            message += "is not authorized to {}".format(op)

        super(NotAuthorized, self).__init__(message)

class ObjectNotFound(AIPackException):
    """
    an exception indicating that a requested content object does not exist
    """
    def __init__(self, handle, message=None):
        if not message:
            message = "Requested object not found: " + str(handle)
        super(ObjectNotFound, self).__init__(message)
        self.handle = handle
