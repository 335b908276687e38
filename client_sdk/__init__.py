from .client import SpecflowClient, SpecflowClientError
from .poller import Poller, PollTimeoutError

__all__ = [
    "Poller",
    "PollTimeoutError",
    "SpecflowClient",
    "SpecflowClientError",
]
