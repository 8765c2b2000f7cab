from abc import ABC, abstractmethod
from math import sqrt


class BufferCalculationStrategy(ABC):
    """
    Sizes a buffer from the safety removed along a chain.

    Each chain link exposes safe_duration (the original estimate) and
    aggressive_duration (after safety was removed), both in working days.
    """

    @abstractmethod
    def calculate_buffer_size(self, links, buffer_ratio):
        """Calculate the raw buffer size in days for a chain"""
        pass

    def get_name(self):
        """Get the name of this strategy"""
        return self.__class__.__name__


def removed_safety(links):
    return [link.safe_duration - link.aggressive_duration for link in links]


# Sum of Squares Method (SSQ)
class SumOfSquaresMethod(BufferCalculationStrategy):
    def calculate_buffer_size(self, links, buffer_ratio):
        """
        Root sum of squares of the removed safety, scaled by the ratio.
        Buffer = buffer_ratio * sqrt(sum(removed²))

        Smaller than a straight sum because independent delays rarely all
        happen together.
        """
        return buffer_ratio * sqrt(sum(r ** 2 for r in removed_safety(links)))

    def get_name(self):
        return "Sum of Squares Method (SSQ)"


# Cut-and-Paste Method (C&PM)
class CutAndPasteMethod(BufferCalculationStrategy):
    def calculate_buffer_size(self, links, buffer_ratio):
        """
        Linear sum of the removed safety, scaled by the ratio.
        Buffer = buffer_ratio * sum(removed)
        """
        return buffer_ratio * sum(removed_safety(links))

    def get_name(self):
        return "Cut-and-Paste Method (C&PM)"


STRATEGIES = {
    "ssq": SumOfSquaresMethod,
    "cpm": CutAndPasteMethod,
}


def get_strategy(name):
    """Look up a buffer strategy by its short name ("ssq" or "cpm")."""
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown buffer method: {name}") from None
