"""Solo RPG narrative interchange and progression engine."""
