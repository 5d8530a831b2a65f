"""Exceptions raised while configuring and running a build matrix."""


class MatrixActionError(Exception):
    """Base class for all matrix action errors."""


class ConfigurationError(MatrixActionError):
    """Malformed trigger, axis or command template.

    Fatal for the whole run: raised before any job is dispatched.
    """


class ExecutionError(MatrixActionError):
    """A single job's environment or command failed.

    Recorded on that job's result; never aborts sibling jobs.
    """


class ProvisionError(ExecutionError):
    """The execution environment for a job could not be provisioned."""


class AggregationError(MatrixActionError):
    """Aggregation was requested over an empty job set."""
