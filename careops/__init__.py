"""Care-home compliance rule evaluation and notification engine."""
