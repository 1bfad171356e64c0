from .config import RollingConfig as RollingConfig
from .exceptions import ConfigurationError as ConfigurationError
from .exceptions import DispatchError as DispatchError
from .exceptions import RequestBuildError as RequestBuildError
from .models import Outcome as Outcome
from .request import MultipartForm as MultipartForm
from .request import Request as Request
from .rolling import RollingRequests as RollingRequests

__all__ = [
    "RollingRequests",
    "RollingConfig",
    "Request",
    "MultipartForm",
    "Outcome",
    "ConfigurationError",
    "DispatchError",
    "RequestBuildError",
]
