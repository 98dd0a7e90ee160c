"""Service-desk ticket and task lifecycle engine."""
