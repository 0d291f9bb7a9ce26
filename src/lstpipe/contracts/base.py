"""Contract primitives shared by every stage check.

A contract failure means a stage handed on data that breaks what it
promised (a missing band, a grid off the template, NaN in the table). That
is a bug in the pipeline, so it is raised as ``ContractViolation`` and
never caught by the stage runner.
"""


class ContractViolation(RuntimeError):
    """A stage output broke its invariant.

    Bad configuration raises ``ConfigurationError`` instead, and numeric
    edge cases (zero denominators, log of a non-positive value) become
    no-data cells rather than errors.
    """


def require(condition: bool, message: str) -> None:
    """Raise ``ContractViolation(message)`` unless ``condition`` holds.

    Examples
    --------
    >>> require("B10" in bands, "Band contract: missing thermal band")
    >>> require(len(table) > 0, "Table contract: at least one row expected")
    """
    if not condition:
        raise ContractViolation(message)
