"""Helper modules for the PrintQueueWeb application."""

__all__ = [
    "phone_number",
    "queue_store",
    "upload_planner",
]
