"""Pure domain rules: enumerations, transitions, permission and slug checks."""
