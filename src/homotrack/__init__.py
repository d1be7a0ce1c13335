"""homotrack: adaptive-step homotopy path tracking in fixed precision."""
import logging

from .config import NewtonConfig, SteppingConfig, TrackerConfig
from .correct import NewtonResult, correct, refine
from .errors import (ConfigurationError, DimensionMismatchError, HomotrackError,
                     PrecisionMismatchError)
from .events import (EventBus, EventCounter, EventRecorder, Observer,
                     PathAccumulator, StepFailLogger)
from .linsolve import DenseLUSolve, GMRESSolve
from .numeric import DOUBLE, SINGLE, NumericTypePair
from .predict import Predictor, predict
from .state import ConditioningEstimate, TrackerState
from .status import SuccessCode
from .step_control import StepSizeController
from .system import (CallableTargetSystem, FunctionSystem, StraightLineHomotopy,
                     System, TargetSystem, TotalDegreeStartSystem)
from .tracker import (FixedPrecisionTracker, PathResult, PathTracker,
                      double_precision_tracker, single_precision_tracker)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
