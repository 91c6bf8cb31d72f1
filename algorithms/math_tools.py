from typing import Iterable, Optional, Tuple


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    EPLEY_DIVISOR: float = 30.0
    MAX_1RM_REPS: int = 10

    @classmethod
    def epley_1rm(cls, weight: float, reps: int) -> Optional[float]:
        """Return the estimated one-rep max using the Epley formula.

        Only sets of 1-10 reps with a positive weight give an estimate; a
        single rep is the one-rep max itself.
        """
        if reps < 1 or reps > cls.MAX_1RM_REPS or weight <= 0:
            return None
        if reps == 1:
            return float(weight)
        return weight * (1 + reps / cls.EPLEY_DIVISOR)

    @staticmethod
    def volume(sets: Iterable[Tuple[Optional[float], Optional[int]]]) -> float:
        """Sum weight times reps over sets where both are recorded."""
        vol = 0.0
        for weight, reps in sets:
            if weight is None or reps is None:
                continue
            vol += weight * reps
        return vol

    @staticmethod
    def format_duration(seconds: int) -> str:
        """Format ``seconds`` as ``m:ss``."""
        mins, secs = divmod(int(seconds), 60)
        return f"{mins}:{secs:02d}"

    @staticmethod
    def format_duration_compact(seconds: Optional[int]) -> str:
        """Format ``seconds`` as ``1m 30s`` or ``45s``."""
        if not seconds:
            return "0s"
        mins, secs = divmod(int(seconds), 60)
        return f"{mins}m {secs}s" if mins > 0 else f"{secs}s"

    @staticmethod
    def format_file_size(size: int) -> str:
        if size <= 0:
            return "0 B"
        units = ["B", "KB", "MB", "GB"]
        idx = 0
        value = float(size)
        while value >= 1024 and idx < len(units) - 1:
            value /= 1024
            idx += 1
        value = round(value, 2)
        text = f"{value:.2f}".rstrip("0").rstrip(".")
        return f"{text} {units[idx]}"
