"""Conditional file inclusion.

A file survives filtering when both of these hold:

* **explicit rule**: if ``composition.conditional_files`` has an entry for the
  file's output path, its condition evaluates true;
* **implicit rule**: base-template and merged files always pass; a service
  file passes only if its exact ``(category, provider)`` is selected.

Condition grammar (evaluated left to right, no precedence beyond this)::

    A && B && ...                      all parts hold
    A || B || ...                      any part holds
    services.<category> == '<value>'   selected provider equals value
    services.<category> in ['a', 'b']  selected provider is listed
    has_<category>                     category is selected

A leaf that matches none of these forms evaluates to *included*.  Overly
strict parsing would silently drop user files, so unknown expressions are
permitted; each one is logged at WARNING level and passed to the optional
``on_unrecognized`` callback.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Callable, Mapping, Optional, Sequence

from anvil.manifest.models import CompositionConfig, ConditionalFile

from .models import ComposedFile, ServiceSelection, SourceKind

logger = logging.getLogger(__name__)

UnrecognizedHook = Callable[[str], None]

_SERVICES_PREFIX = "services."


def build_condition_context(selections: Sequence[ServiceSelection]) -> dict[str, str]:
    """``{"auth": "clerk", "has_auth": "true", ...}`` for every selection."""
    context: dict[str, str] = {}
    for selection in selections:
        key = selection.category.key
        context[key] = selection.provider
        context[f"has_{key}"] = "true"
    return context


def _unquote(value: str) -> str:
    return value.strip().strip("'").strip('"')


class ConditionEvaluator:
    """Evaluates condition strings against a selection context."""

    def __init__(
        self,
        context: Mapping[str, str],
        on_unrecognized: Optional[UnrecognizedHook] = None,
    ) -> None:
        self.context = context
        self.on_unrecognized = on_unrecognized

    def evaluate(self, condition: str) -> bool:
        condition = condition.strip()
        if "&&" in condition:
            return all(self._evaluate_leaf(part) for part in condition.split("&&"))
        if "||" in condition:
            return any(self._evaluate_leaf(part) for part in condition.split("||"))
        return self._evaluate_leaf(condition)

    def _evaluate_leaf(self, leaf: str) -> bool:
        leaf = leaf.strip()

        if "==" in leaf:
            parts = leaf.split("==")
            if len(parts) == 2 and parts[0].strip().startswith(_SERVICES_PREFIX):
                category = parts[0].strip()[len(_SERVICES_PREFIX):]
                return self.context.get(category) == _unquote(parts[1])

        if " in " in leaf:
            parts = leaf.split(" in ")
            if len(parts) == 2:
                left, right = parts[0].strip(), parts[1].strip()
                if left.startswith(_SERVICES_PREFIX) and right.startswith("[") and right.endswith("]"):
                    category = left[len(_SERVICES_PREFIX):]
                    options = [_unquote(option) for option in right[1:-1].split(",")]
                    return self.context.get(category) in options

        if leaf.startswith("has_"):
            return self.context.get(leaf) == "true"

        logger.warning("Unrecognized condition %r; including file", leaf)
        if self.on_unrecognized is not None:
            self.on_unrecognized(leaf)
        return True


def evaluate_condition(
    condition: str,
    context: Mapping[str, str],
    on_unrecognized: Optional[UnrecognizedHook] = None,
) -> bool:
    """Evaluate a single condition string.  See the module docstring."""
    return ConditionEvaluator(context, on_unrecognized).evaluate(condition)


class ConditionalFilter:
    """Drops files whose inclusion conditions do not hold."""

    def __init__(self, on_unrecognized: Optional[UnrecognizedHook] = None) -> None:
        self.on_unrecognized = on_unrecognized

    def filter(
        self,
        files: Sequence[ComposedFile],
        selections: Sequence[ServiceSelection],
        composition_config: Optional[CompositionConfig] = None,
    ) -> list[ComposedFile]:
        evaluator = ConditionEvaluator(build_condition_context(selections), self.on_unrecognized)
        rules = composition_config.conditional_files if composition_config else []
        selected = {(s.category, s.provider) for s in selections}

        kept = [
            f for f in files
            if self._explicit_passes(f, rules, evaluator) and _implicit_passes(f, selected)
        ]
        logger.debug("Conditional filter kept %d of %d file(s)", len(kept), len(files))
        return kept

    def _explicit_passes(
        self,
        file: ComposedFile,
        rules: Sequence[ConditionalFile],
        evaluator: ConditionEvaluator,
    ) -> bool:
        rule = _matching_rule(file, rules)
        if rule is None:
            return True
        return evaluator.evaluate(rule.condition)


def _matching_rule(file: ComposedFile, rules: Sequence[ConditionalFile]) -> Optional[ConditionalFile]:
    path = PurePosixPath(file.path)
    for rule in rules:
        if PurePosixPath(rule.path) != path:
            continue
        if rule.source_service and not _source_matches(file, rule.source_service):
            continue
        return rule
    return None


def _source_matches(file: ComposedFile, source_service: str) -> bool:
    """``source_service`` is ``category`` or ``category/provider``."""
    if file.source.kind is not SourceKind.SERVICE or file.source.category is None:
        return False
    category_key, _, provider = source_service.strip().lower().partition("/")
    if file.source.category.key != category_key:
        return False
    return not provider or (file.source.provider or "").lower() == provider


def _implicit_passes(file: ComposedFile, selected: set) -> bool:
    if file.source.kind is SourceKind.SERVICE:
        return (file.source.category, file.source.provider) in selected
    return True
