"""Error codes, event names, and the not-found sentinel route name."""


class ErrorCodes:
    """Codes carried by ``RouterError.code``."""

    ROUTER_NOT_STARTED = "NOT_STARTED"
    NO_START_PATH_OR_STATE = "NO_START_PATH_OR_STATE"
    ROUTER_ALREADY_STARTED = "ALREADY_STARTED"
    ROUTE_NOT_FOUND = "ROUTE_NOT_FOUND"
    SAME_STATES = "SAME_STATES"
    CANNOT_DEACTIVATE = "CANNOT_DEACTIVATE"
    CANNOT_ACTIVATE = "CANNOT_ACTIVATE"
    TRANSITION_ERR = "TRANSITION_ERR"
    TRANSITION_CANCELLED = "CANCELLED"


ERROR_CODES: frozenset[str] = frozenset(
    value for key, value in vars(ErrorCodes).items() if key.isupper()
)

# Name of the state built for paths no route matches
UNKNOWN_ROUTE = "@@wayfinder/UNKNOWN_ROUTE"


class Events:
    """Event names understood by ``EventBus``."""

    ROUTER_START = "start"
    ROUTER_STOP = "stop"
    TRANSITION_START = "transition_start"
    TRANSITION_CANCEL = "transition_cancel"
    TRANSITION_SUCCESS = "transition_success"
    TRANSITION_ERROR = "transition_error"
    TEARDOWN = "teardown"


EVENT_NAMES: tuple[str, ...] = (
    Events.ROUTER_START,
    Events.ROUTER_STOP,
    Events.TRANSITION_START,
    Events.TRANSITION_CANCEL,
    Events.TRANSITION_SUCCESS,
    Events.TRANSITION_ERROR,
    Events.TEARDOWN,
)

# Plugin hook name -> event it listens to (``teardown`` is called directly)
PLUGIN_HOOKS: dict[str, str] = {
    "on_start": Events.ROUTER_START,
    "on_stop": Events.ROUTER_STOP,
    "on_transition_start": Events.TRANSITION_START,
    "on_transition_cancel": Events.TRANSITION_CANCEL,
    "on_transition_success": Events.TRANSITION_SUCCESS,
    "on_transition_error": Events.TRANSITION_ERROR,
}
