"""Host probe adapters. Each probe is a Check around a bounded system command or filesystem test."""

from naswatch.probes.exec import ExecError, ExecResult, ExecTimeout, run_command

__all__ = ["ExecError", "ExecResult", "ExecTimeout", "run_command"]
