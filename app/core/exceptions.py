"""Error taxonomy for the sync pipeline.

Leaf clients raise these; the collector, the publication pipeline and the
orchestrator catch them and turn them into status events.
"""


class MetricsSourceError(Exception):
    """Base class for metrics provider failures."""
    pass


class MetricUnavailableError(MetricsSourceError):
    """Raised when the provider cannot resolve a requested metric type."""
    pass


class MetricReadError(MetricsSourceError):
    """Raised when a metric query ran but returned an error."""
    pass


class RecordStoreError(Exception):
    """Base class for record store failures."""
    pass


class StoreQueryError(RecordStoreError):
    pass


class StoreDeleteError(RecordStoreError):
    pass


class StoreInsertError(RecordStoreError):
    pass


class InvalidStateTransition(Exception):
    """Raised when start/stop is called from a state that does not allow it."""

    def __init__(self, action: str, state):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while sync is {state.value}")
