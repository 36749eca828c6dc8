from sales_assistant.models.storage_entry import StorageEntry
from sales_assistant.models.session import WorkflowSession

__all__ = ["StorageEntry", "WorkflowSession"]
