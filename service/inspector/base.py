"""
Abstract base class for all inspectors.

Why a base class:
  Adding a new enrichment source = new file implementing inspect().
  The runtime calls inspectors without knowing their internals (Strategy pattern).
"""

from abc import ABC, abstractmethod
from typing import Optional

from models import Attribute, InspectionContext, TaskResult


class Inspector(ABC):
    @abstractmethod
    def inspect(self, ctx: InspectionContext, attr: Attribute) -> Optional[TaskResult]:
        """
        Inspects one attribute of one report.

        Returns None when the attribute is of no interest to this inspector.
        Raising fails the task; the runtime does not retry it.
        """
