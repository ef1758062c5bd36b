"""Behavior-driven test suites for pytest.

The `pytest_bdspec` package lets tests declare nested groups of setup and
assertion blocks, either with describe/before_each/it or with
feature/background/scenario/given/when/then, and replays every leaf as an
independent sub-test.

Key features:
- nested declarations flattened into linearly replayable suites;
- sequential or parallel replay, with isolated per-suite World state;
- Gherkin-like reports with optional colors, durations and locations;
- a pytest plugin binding suites to test items.
"""

from pytest_bdspec.errors import (
    CallbackError,
    DeclarationError,
    SharedStateWarning,
    SpecError,
    StateError,
    StepError,
)
from pytest_bdspec.expect import Expectation
from pytest_bdspec.harness import Harness
from pytest_bdspec.options import Output, Parallel, SuiteSettings
from pytest_bdspec.suites import FeatureSuite, SpecSuite
from pytest_bdspec.world import World

__all__ = (
    'CallbackError',
    'DeclarationError',
    'Expectation',
    'FeatureSuite',
    'Harness',
    'Output',
    'Parallel',
    'SharedStateWarning',
    'SpecError',
    'SpecSuite',
    'StateError',
    'StepError',
    'SuiteSettings',
    'World',
)
