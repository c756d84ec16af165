# mpitest/data_models/__init__.py

from .test_case import TestCase, TestBody
from .failure_record import AssertSite, FailureRecord, format_failure

__all__ = [
    "TestCase",
    "TestBody",
    "AssertSite",
    "FailureRecord",
    "format_failure",
]
