"""Device fleet relay: check-ins, command queues and an operator chat console."""
