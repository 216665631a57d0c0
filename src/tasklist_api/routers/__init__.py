"""HTTP routers for the task list API."""
