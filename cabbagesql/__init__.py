"""SQL values, expressions, schemas, plan nodes, optimizer passes and executors."""

__version__ = "0.1.0"