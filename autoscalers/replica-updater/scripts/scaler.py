from adapter_logger import AdapterLogger
from service_query import OperationWindow, ServiceQuery


logger = AdapterLogger("scaler").logger


def scale_service(service_name: str, replicas: int, query: ServiceQuery) -> OperationWindow:
    """Set the desired replica count of a service in a single attempt.

    An empty name is a no-op and returns an unset window. Errors from the
    query propagate unchanged; no retry or bound check happens here.
    """
    if not service_name:
        logger.debug("No service name given, nothing to scale")
        return OperationWindow()

    return query.set_replicas(service_name, replicas)
