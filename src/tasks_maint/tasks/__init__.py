"""Task-state management: conditions, counting, backup, deletion and drain polling."""
