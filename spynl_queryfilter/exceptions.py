"""Exceptions raised by the query filter."""


class QueryFilterException(Exception):
    """
    The Superclass for all query filter Exceptions.

    param message: A message for the enduser. Exposed, should NOT contain
                   sensitive data.
    param developer_message: A message for 3rd party users of our API.
                             Exposed, should NOT contain sensitive data.
    param debug_message: A message for internal use when debugging.
    """

    def __init__(
        self,
        message='an internal error has occured',
        developer_message=None,
        debug_message=None,
    ):
        super().__init__(message)
        self.message = message
        self.developer_message = developer_message
        if developer_message and not debug_message:
            debug_message = developer_message

        self.debug_message = debug_message

    def make_response(self):
        """
        Return a response as a dictionary.

        If an exception needs to store additional information in the reponse
        it can be overriden in the following way.

        >>> def make_reponse(self):
                response = super().make_response()
                response.update({
                    'extra': 'Some extra information'
                })
                return response
        """
        return {
            'status': 'error',
            'type': self.__class__.__name__,
            'message': self.message,
            'developer_message': self.developer_message or self.message,
        }

    def __str__(self):
        return str(self.message)


class UnknownGroup(QueryFilterException):
    """Raised when a catalog lookup is done for a group it does not define."""

    def __init__(self, group):
        self.group = group
        super().__init__(message='Unknown operator group: {!r}.'.format(group))


class InvalidArgument(QueryFilterException):
    """Raised for malformed masks, tokens, group names or configurations."""


class DepthExceeded(QueryFilterException):
    """Raised when a document is nested too deeply or refers to itself."""

    def __init__(self, max_depth, cycle=False):
        self.max_depth = max_depth
        self.cycle = cycle
        if cycle:
            message = 'Document contains a reference cycle.'
        else:
            message = 'Document is nested deeper than {} levels.'.format(max_depth)
        super().__init__(message=message)
