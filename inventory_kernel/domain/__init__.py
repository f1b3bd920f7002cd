"""Pure domain layer: column vocabulary, validation, diffing, costing, sanitizing."""
