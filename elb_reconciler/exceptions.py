"""Custom exception hierarchy for the load balancer reconciler."""


class ReconcilerError(Exception):
    """Base exception for all reconciler errors."""


class ConfigError(ReconcilerError):
    """Invalid or missing configuration."""


class ConfigurationMissingError(ReconcilerError):
    """A required capability (e.g. the cloud client) is not available."""


class InstanceNotFound(ReconcilerError):
    """An instance registered to a load balancer no longer exists in compute inventory."""

    def __init__(self, instance_id: str, load_balancer: str | None = None):
        if load_balancer:
            message = f"Instance {instance_id} is registered to {load_balancer} but no longer exists"
        else:
            message = f"Instance {instance_id} no longer exists"
        super().__init__(message)
        self.instance_id = instance_id
        self.load_balancer = load_balancer


class RemoteCallError(ReconcilerError):
    """Error returned by (or while reaching) the cloud API."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        load_balancer: str | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.load_balancer = load_balancer
        self.error_code = error_code
