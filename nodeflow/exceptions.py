"""Base exceptions for NodeFlow."""


class NodeFlowException(Exception):
    """Base exception for all NodeFlow errors."""
    pass


class ConfigurationError(NodeFlowException):
    """Raised when there's a configuration error."""
    pass


class NotFoundError(NodeFlowException):
    """Raised when a node type or catalog entry is not found."""
    pass
