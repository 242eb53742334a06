"""Tool factories, one module per GitLab area."""
