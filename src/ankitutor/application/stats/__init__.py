# Application Stats Package
from .grading import CardAggregate, GradeCalculator

__all__ = ["GradeCalculator", "CardAggregate"]
