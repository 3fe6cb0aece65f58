from gridquery.filters.columns import ColumnDefinition, ColumnRegistry, DataType
from gridquery.models.order import ORDER_CHANNELS, ORDER_STATUSES, ORDER_TAGS, Order

ORDER_COLUMNS = ColumnRegistry.from_columns(
    [
        ColumnDefinition("externalId", DataType.TEXT, "external_id", "orders.externalId"),
        ColumnDefinition("channel", DataType.OPTION, "channel", "orders.channel", options=ORDER_CHANNELS),
        ColumnDefinition("status", DataType.OPTION, "status", "orders.status", options=ORDER_STATUSES),
        ColumnDefinition("customerName", DataType.TEXT, "customer_name", "orders.customerName"),
        ColumnDefinition("customerEmail", DataType.TEXT, "customer_email", "orders.customerEmail"),
        ColumnDefinition("price", DataType.NUMBER, "total_amount", "orders.price"),
        ColumnDefinition("isPaid", DataType.BOOLEAN, "is_paid", "orders.isPaid"),
        ColumnDefinition("tags", DataType.MULTI_OPTION, "tags", "orders.tags", options=ORDER_TAGS),
        ColumnDefinition("createdAt", DataType.DATE, "created_at", "orders.createdAt"),
    ]
)

ORDERS_MODEL = Order
