"""Validation framework: linting open documents and classifying failures.

Provides the validation pipeline, the error classifier chain that turns
lint failures into statuses, and the status publisher.
"""

from __future__ import annotations

from eslint_bridge.validation.classifiers import (
    ClassifierChain,
    ConfigSyntaxClassifier,
    ErrorClassifier,
    GenericErrorClassifier,
    NoConfigClassifier,
    batch_chain,
    single_chain,
)
from eslint_bridge.validation.pipeline import ValidationPipeline
from eslint_bridge.validation.status import StatusPublisher, worst
from eslint_bridge.validation.tracker import ErrorMessageTracker

__all__ = [
    # Classifiers
    "ClassifierChain",
    "ConfigSyntaxClassifier",
    "ErrorClassifier",
    "GenericErrorClassifier",
    "NoConfigClassifier",
    "batch_chain",
    "single_chain",
    # Pipeline
    "ValidationPipeline",
    # Status
    "ErrorMessageTracker",
    "StatusPublisher",
    "worst",
]
