from __future__ import annotations

from typing import Mapping, Protocol

from gridquery.filters.columns import ColumnRegistry
from gridquery.filters.operators import OPERATOR_CATALOG
from gridquery.schemas.table import ColumnMeta, OperatorMeta, TableColumns


class LabelLookup(Protocol):
    def label(self, key: str, locale: str) -> str:
        ...


class StaticLabels:
    """Dictionary-backed labels; unknown keys and locales fall back to the key itself."""

    def __init__(self, translations: Mapping[str, Mapping[str, str]], fallback_locale: str = "en"):
        self.translations = translations
        self.fallback_locale = fallback_locale

    def label(self, key: str, locale: str) -> str:
        table = self.translations.get(locale) or self.translations.get(self.fallback_locale) or {}
        return table.get(key, key)


DEFAULT_TRANSLATIONS: dict[str, dict[str, str]] = {
    "en": {
        "operator.equals": "is",
        "operator.contains": "contains",
        "operator.startsWith": "starts with",
        "operator.isEmpty": "is empty",
        "operator.isNotEmpty": "is not empty",
        "operator.greaterThan": "greater than",
        "operator.lessThan": "less than",
        "operator.between": "is between",
        "operator.before": "is before",
        "operator.after": "is after",
        "operator.isTrue": "is true",
        "operator.isFalse": "is false",
        "operator.is": "is",
        "operator.isNot": "is not",
        "operator.isAnyOf": "is any of",
        "operator.includesAny": "includes any of",
        "operator.includesAll": "includes all of",
        "operator.excludes": "excludes",
        "orders.externalId": "External ID",
        "orders.channel": "Channel",
        "orders.status": "Status",
        "orders.customerName": "Customer",
        "orders.customerEmail": "Email",
        "orders.price": "Price",
        "orders.isPaid": "Paid",
        "orders.tags": "Tags",
        "orders.createdAt": "Date",
        "llmEvents.provider": "Provider",
        "llmEvents.model": "Model",
        "llmEvents.status": "Status",
        "llmEvents.latency": "Latency (ms)",
        "llmEvents.cost": "Cost (USD)",
        "llmEvents.streaming": "Streaming",
        "llmEvents.date": "Date",
    },
    "es": {
        "operator.equals": "es",
        "operator.contains": "contiene",
        "operator.startsWith": "empieza con",
        "operator.isEmpty": "está vacío",
        "operator.isNotEmpty": "no está vacío",
        "operator.greaterThan": "mayor que",
        "operator.lessThan": "menor que",
        "operator.between": "está entre",
        "operator.before": "es anterior a",
        "operator.after": "es posterior a",
        "operator.isTrue": "es verdadero",
        "operator.isFalse": "es falso",
        "operator.is": "es",
        "operator.isNot": "no es",
        "operator.isAnyOf": "es cualquiera de",
        "operator.includesAny": "incluye alguno de",
        "operator.includesAll": "incluye todos",
        "operator.excludes": "excluye",
        "orders.externalId": "ID externo",
        "orders.channel": "Canal",
        "orders.status": "Estado",
        "orders.customerName": "Cliente",
        "orders.customerEmail": "Correo",
        "orders.price": "Precio",
        "orders.isPaid": "Pagado",
        "orders.tags": "Etiquetas",
        "orders.createdAt": "Fecha",
        "llmEvents.provider": "Proveedor",
        "llmEvents.model": "Modelo",
        "llmEvents.status": "Estado",
        "llmEvents.latency": "Latencia (ms)",
        "llmEvents.cost": "Costo (USD)",
        "llmEvents.streaming": "Streaming",
        "llmEvents.date": "Fecha",
    },
}

default_labels = StaticLabels(DEFAULT_TRANSLATIONS)


def describe_columns(table_id: str, registry: ColumnRegistry, labels: LabelLookup, locale: str) -> TableColumns:
    columns = []
    for column in registry:
        operators = [
            OperatorMeta(id=operator.value, arity=arity.value, label=labels.label(f"operator.{operator.value}", locale))
            for operator, arity in OPERATOR_CATALOG[column.data_type]
        ]
        columns.append(
            ColumnMeta(
                id=column.id,
                data_type=column.data_type.value,
                label=labels.label(column.label_key, locale),
                options=list(column.options),
                operators=operators,
            )
        )
    return TableColumns(table=table_id, locale=locale, columns=columns)
