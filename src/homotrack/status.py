# status.py
from enum import Enum


class SuccessCode(Enum):
    """Outcome of every tracker stage. Returned, never raised."""

    Success                                 = "success"
    MatrixSolveFailure                      = "matrix solve failure"
    MatrixSolveFailureFirstPartOfPrediction = "matrix solve failure in first predictor stage"
    FailedToConverge                        = "corrector failed to converge"
    GoingToInfinity                         = "going to infinity"
    MaxNumStepsTaken                        = "max number of steps taken"
    MinStepSizeReached                      = "min step size reached"
    SingularStartPoint                      = "singular start point"
    ExternallyTerminated                    = "externally terminated"

    @property
    def ok(self) -> bool:
        return self is SuccessCode.Success
