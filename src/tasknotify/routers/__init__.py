"""HTTP routers of the task notification API."""
