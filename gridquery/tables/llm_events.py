from gridquery.filters.columns import ColumnDefinition, ColumnRegistry, DataType
from gridquery.models.llm_event import LLM_EVENT_STATUSES, LLM_PROVIDERS, LlmEvent

LLM_EVENT_COLUMNS = ColumnRegistry.from_columns(
    [
        ColumnDefinition("provider", DataType.OPTION, "provider", "llmEvents.provider", options=LLM_PROVIDERS),
        ColumnDefinition("model", DataType.TEXT, "model", "llmEvents.model"),
        ColumnDefinition("status", DataType.OPTION, "status", "llmEvents.status", options=LLM_EVENT_STATUSES),
        ColumnDefinition("latency", DataType.NUMBER, "latency_ms", "llmEvents.latency"),
        ColumnDefinition("cost", DataType.NUMBER, "cost_usd", "llmEvents.cost"),
        ColumnDefinition("streaming", DataType.BOOLEAN, "is_streaming", "llmEvents.streaming"),
        ColumnDefinition("date", DataType.DATE, "created_at", "llmEvents.date"),
    ]
)

LLM_EVENTS_MODEL = LlmEvent
