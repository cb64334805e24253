"""Entity descriptors for the personal-finance schema.

Importing this module populates ``default_registry``; ``run_sync`` walks the
registry in declaration order. Relationship targets are entity names, so the
order of the ``declare`` calls below does not matter for them.
"""

from __future__ import annotations

from .models import CURRENT_TIMESTAMP, ColumnSpec, ColumnType, RelationshipKind, RelationshipSpec
from .registry import EntityRegistry, default_registry

THEMES = ("dark", "light")
LANGUAGES = ("en-US", "es-ES", "pt-BR")
DATE_FORMATS = ("DD/MM/YYYY", "MM/DD/YYYY")
CURRENCIES = ("ARS", "COP", "BRL", "EUR", "USD")
ACCOUNT_TYPES = ("checking", "payroll", "savings", "investment", "loan", "other")
TRANSACTION_TYPES = ("income", "expense")
TRANSACTION_SOURCES = ("account", "creditCard")
CATEGORY_COLORS = (
    "red",
    "blue",
    "green",
    "purple",
    "yellow",
    "orange",
    "pink",
    "gray",
    "cyan",
    "indigo",
)
CARD_FLAGS = ("visa", "mastercard", "amex", "elo", "hipercard", "discover", "diners")
LOG_TYPES = ("alert", "debug", "error", "success")
LOG_OPERATIONS = ("create", "delete", "login", "logout", "update")
LOG_CATEGORIES = (
    "account",
    "auth",
    "category",
    "transaction",
    "log",
    "subcategory",
    "user",
    "creditCard",
    "tag",
)


def _enum(name: str, values: tuple[str, ...], default: str | None = None) -> ColumnSpec:
    return ColumnSpec(name, ColumnType.ENUM, default=default, enum_values=values)


def _timestamps() -> tuple[ColumnSpec, ColumnSpec]:
    return (
        ColumnSpec("createdAt", ColumnType.TIMESTAMP, default=CURRENT_TIMESTAMP),
        ColumnSpec(
            "updatedAt",
            ColumnType.TIMESTAMP,
            default=CURRENT_TIMESTAMP,
            on_update_refresh=True,
        ),
    )


def _many_to_one(field: str, target: str, inverse: str) -> RelationshipSpec:
    return RelationshipSpec(RelationshipKind.MANY_TO_ONE, field, target, inverse)


def _one_to_many(field: str, target: str, inverse: str) -> RelationshipSpec:
    return RelationshipSpec(RelationshipKind.ONE_TO_MANY, field, target, inverse)


def register_entities(registry: EntityRegistry) -> EntityRegistry:
    registry.declare(
        "User",
        "user",
        columns=(
            ColumnSpec("firstName"),
            ColumnSpec("lastName"),
            ColumnSpec("email", unique=True),
            ColumnSpec("password"),
            ColumnSpec("birthDate", ColumnType.DATE),
            ColumnSpec("phone"),
            _enum("theme", THEMES, "dark"),
            _enum("language", LANGUAGES, "en-US"),
            _enum("dateFormat", DATE_FORMATS, "DD/MM/YYYY"),
            _enum("currency", CURRENCIES, "BRL"),
            ColumnSpec("active", ColumnType.BOOLEAN, default=True),
            *_timestamps(),
        ),
        relationships=(
            _one_to_many("accounts", "Account", "user"),
            _one_to_many("categories", "Category", "user"),
            _one_to_many("creditCards", "CreditCard", "user"),
            _one_to_many("logs", "Log", "user"),
        ),
    )

    registry.declare(
        "Account",
        "account",
        columns=(
            ColumnSpec("name"),
            ColumnSpec("institution"),
            _enum("type", ACCOUNT_TYPES, "other"),
            ColumnSpec("observation", ColumnType.TEXT),
            ColumnSpec("active", ColumnType.BOOLEAN, default=True),
            *_timestamps(),
        ),
        relationships=(
            _many_to_one("user", "User", "accounts"),
            _one_to_many("transactions", "Transaction", "account"),
        ),
    )

    registry.declare(
        "Category",
        "category",
        columns=(
            ColumnSpec("name"),
            _enum("type", TRANSACTION_TYPES),
            _enum("color", CATEGORY_COLORS, "purple"),
            ColumnSpec("active", ColumnType.BOOLEAN, default=True),
            *_timestamps(),
        ),
        relationships=(
            _many_to_one("user", "User", "categories"),
            _one_to_many("subcategories", "Subcategory", "category"),
            _one_to_many("transactions", "Transaction", "category"),
        ),
    )

    registry.declare(
        "Subcategory",
        "subcategory",
        columns=(
            ColumnSpec("name"),
            ColumnSpec("active", ColumnType.BOOLEAN, default=True),
            *_timestamps(),
        ),
        relationships=(
            _many_to_one("category", "Category", "subcategories"),
            _one_to_many("transactions", "Transaction", "subcategory"),
        ),
    )

    registry.declare(
        "CreditCard",
        "creditcard",
        columns=(
            ColumnSpec("name"),
            _enum("flag", CARD_FLAGS),
            ColumnSpec("observation", ColumnType.TEXT),
            ColumnSpec("active", ColumnType.BOOLEAN, default=True),
            *_timestamps(),
        ),
        relationships=(
            RelationshipSpec(RelationshipKind.ONE_TO_ONE, "account", "Account", "creditCard"),
            _many_to_one("user", "User", "creditCards"),
            _one_to_many("transactions", "Transaction", "creditCard"),
        ),
    )

    registry.declare(
        "Tag",
        "tag",
        columns=(
            ColumnSpec("name", indexed=True),
            ColumnSpec("active", ColumnType.BOOLEAN, default=True),
            *_timestamps(),
        ),
        relationships=(
            _many_to_one("user", "User", "tags"),
            RelationshipSpec(
                RelationshipKind.MANY_TO_MANY,
                "transactions",
                "Transaction",
                "tags",
                join_table="transaction_tag",
            ),
        ),
    )

    registry.declare(
        "Transaction",
        "transaction",
        columns=(
            ColumnSpec("value", ColumnType.DECIMAL),
            ColumnSpec("date", ColumnType.DATE),
            _enum("transactionType", TRANSACTION_TYPES),
            ColumnSpec("observation", ColumnType.TEXT),
            _enum("transactionSource", TRANSACTION_SOURCES),
            ColumnSpec("isInstallment", ColumnType.BOOLEAN, default=False),
            ColumnSpec("totalMonths", ColumnType.INTEGER),
            ColumnSpec("isRecurring", ColumnType.BOOLEAN, default=False),
            ColumnSpec("paymentDay", ColumnType.INTEGER),
            ColumnSpec("active", ColumnType.BOOLEAN, default=True),
            *_timestamps(),
        ),
        relationships=(
            _many_to_one("account", "Account", "transactions"),
            _many_to_one("creditCard", "CreditCard", "transactions"),
            _many_to_one("category", "Category", "transactions"),
            _many_to_one("subcategory", "Subcategory", "transactions"),
        ),
    )

    registry.declare(
        "Log",
        "log",
        columns=(
            _enum("type", LOG_TYPES),
            _enum("operation", LOG_OPERATIONS, "create"),
            _enum("category", LOG_CATEGORIES, "log"),
            ColumnSpec("detail", ColumnType.TEXT),
            ColumnSpec("timestamp", ColumnType.DATE),
            *_timestamps(),
        ),
        relationships=(_many_to_one("user", "User", "logs"),),
    )
    return registry


register_entities(default_registry)


__all__ = ["register_entities"]
