"""subsysbuild — provision an execution subsystem and drive a configure/make build inside it."""

__version__ = "0.1.0"
