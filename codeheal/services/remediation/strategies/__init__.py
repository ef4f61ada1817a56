"""Fix strategies for the remediation engine"""

from .base import StrategyContext, StrategyDescriptor, StrategyOutcome, StrategyRunner
from .local import LocalMultiFileStrategy, LocalProactiveStrategy, LocalSimpleStrategy
from .ai import (
    AIClient,
    AIFullStrategy,
    AIIterativeStrategy,
    AIQuickStrategy,
    AIRegenerateStrategy,
    extract_text,
)

__all__ = [
    'StrategyContext',
    'StrategyDescriptor',
    'StrategyOutcome',
    'StrategyRunner',
    'LocalSimpleStrategy',
    'LocalMultiFileStrategy',
    'LocalProactiveStrategy',
    'AIClient',
    'AIQuickStrategy',
    'AIFullStrategy',
    'AIIterativeStrategy',
    'AIRegenerateStrategy',
    'extract_text',
]
