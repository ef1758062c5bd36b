"""Declaration, assembly and replay engine.

This package turns nested declaration calls into flat suites and replays
them against a harness.

It provides:
- the declaration stack and the per-group background accumulator;
- the suite assembler and its registry;
- the registration mixin shared by both vocabularies;
- the sequential and parallel scheduler.
"""

from .assembler import Suite, SuiteAssembler
from .registration import RegistrationMixin
from .scheduler import Countdown, Scheduler
from .stack import DeclarationStack, PreconditionAccumulator

__all__ = (
    'Countdown',
    'DeclarationStack',
    'PreconditionAccumulator',
    'RegistrationMixin',
    'Scheduler',
    'Suite',
    'SuiteAssembler',
)
