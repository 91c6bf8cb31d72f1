from .math_tools import MathTools
from .set_comparator import Ordering, SetComparator
from .weight_converter import WeightConverter

__all__ = ["MathTools", "Ordering", "SetComparator", "WeightConverter"]
