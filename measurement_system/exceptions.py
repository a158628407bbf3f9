"""Exception hierarchy for measurement_system."""


class MeasurementError(Exception):
    """Base class for every error raised by measurement_system."""


class ArityMismatchError(MeasurementError, ValueError):
    """Derivative tuple and operand tuple differ in length."""

    def __init__(self, n_derivatives: int, n_operands: int):
        self.n_derivatives = n_derivatives
        self.n_operands = n_operands
        super().__init__(
            f"Got {n_derivatives} derivative(s) for {n_operands} operand(s); "
            f"the two must match one-to-one."
        )


class NegativeUncertaintyError(MeasurementError, ValueError):
    """A standard uncertainty was negative or NaN."""


class FormulaError(MeasurementError, ValueError):
    """A formula could not be parsed or its variables could not be bound."""
