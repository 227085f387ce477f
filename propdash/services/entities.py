from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from propdash.errors import UnknownEntityError
from propdash.schemas.list_view import ColumnSpec, SortDirection, SortOption


class ListMode(str, enum.Enum):
    # Backend searches, sorts and paginates.
    server = "server"
    # Backend searches and paginates; the current page is sorted locally.
    client_sort = "client_sort"
    # Backend returns the whole collection; everything happens locally.
    client = "client"


@dataclass(frozen=True)
class EntityDescriptor:
    entity_type: str
    endpoint: str
    columns: tuple[ColumnSpec, ...]
    sort_options: tuple[SortOption, ...]
    default_sort_key: str
    default_sort_direction: SortDirection
    locked_column: str
    storage_prefix: str
    page_size: int | None = None
    list_mode: ListMode = ListMode.server
    search_fields: tuple[str, ...] = ()
    filter_keys: frozenset[str] = frozenset()
    field_map: dict[str, str] = field(default_factory=dict)

    @property
    def column_ids(self) -> list[str]:
        return [column.id for column in self.columns]

    @property
    def sort_keys(self) -> list[str]:
        return [option.key for option in self.sort_options]

    @property
    def default_visible_columns(self) -> list[str]:
        return [column.id for column in self.columns if column.default_visible]

    @property
    def server_sorts(self) -> bool:
        return self.list_mode == ListMode.server

    @property
    def server_paginates(self) -> bool:
        return self.list_mode != ListMode.client

    def column(self, column_id: str) -> ColumnSpec | None:
        return next((column for column in self.columns if column.id == column_id), None)

    def record_field(self, key: str) -> str:
        """Record attribute backing a column id or sort key."""
        return self.field_map.get(key, key)


class EntityRegistry:
    _entities: dict[str, EntityDescriptor] = {}

    @classmethod
    def register(
        cls,
        *,
        entity_type: str,
        endpoint: str,
        columns: list[tuple[str, str] | tuple[str, str, bool]],
        sort_options: list[tuple[str, str]],
        default_sort_key: str,
        default_sort_direction: SortDirection | str = SortDirection.desc,
        locked_column: str | None = None,
        storage_prefix: str | None = None,
        page_size: int | None = None,
        list_mode: ListMode = ListMode.server,
        search_fields: list[str] | None = None,
        filter_keys: list[str] | None = None,
        field_map: dict[str, Any] | None = None,
    ) -> EntityDescriptor:
        if not entity_type:
            raise ValueError("entity_type is required")
        if not columns:
            raise ValueError(f"{entity_type}: at least one column is required")

        locked = locked_column or columns[0][0]
        seen: set[str] = set()
        specs: list[ColumnSpec] = []
        for entry in columns:
            column_id, title = entry[0], entry[1]
            default_visible = entry[2] if len(entry) > 2 else True
            if column_id in seen:
                raise ValueError(f"{entity_type}: duplicate column {column_id}")
            seen.add(column_id)
            is_locked = column_id == locked
            specs.append(
                ColumnSpec(
                    id=column_id,
                    title=title,
                    default_visible=bool(default_visible) or is_locked,
                    locked=is_locked,
                )
            )
        if specs[0].id != locked:
            raise ValueError(f"{entity_type}: locked column {locked} must be declared first")

        options = tuple(SortOption(key=key, label=label) for key, label in sort_options)
        if default_sort_key not in {option.key for option in options}:
            raise ValueError(
                f"{entity_type}: default sort {default_sort_key} is not a sort option"
            )

        descriptor = EntityDescriptor(
            entity_type=entity_type,
            endpoint="/" + endpoint.lstrip("/"),
            columns=tuple(specs),
            sort_options=options,
            default_sort_key=default_sort_key,
            default_sort_direction=SortDirection(default_sort_direction),
            locked_column=locked,
            storage_prefix=storage_prefix or entity_type,
            page_size=page_size,
            list_mode=list_mode,
            search_fields=tuple(search_fields or ()),
            filter_keys=frozenset(filter_keys or ()),
            field_map=dict(field_map or {}),
        )
        cls._entities[entity_type] = descriptor
        return descriptor

    @classmethod
    def get(cls, entity_type: str) -> EntityDescriptor:
        descriptor = cls._entities.get(entity_type)
        if not descriptor:
            raise UnknownEntityError(entity_type)
        return descriptor

    @classmethod
    def exists(cls, entity_type: str) -> bool:
        return entity_type in cls._entities

    @classmethod
    def all(cls) -> list[EntityDescriptor]:
        return list(cls._entities.values())


EntityRegistry.register(
    entity_type="contacts",
    endpoint="/property-manager/contacts",
    columns=[
        ("contact_id", "Contact ID"),
        ("contact_type", "Contact Type"),
        ("full_name", "Full Name"),
        ("email", "Email"),
        ("phone", "Phone"),
        ("status", "Status"),
    ],
    sort_options=[
        ("created_at", "Date added"),
        ("full_name", "Full Name"),
        ("contact_type", "Contact Type"),
        ("status", "Status"),
    ],
    default_sort_key="created_at",
    default_sort_direction=SortDirection.desc,
    page_size=50,
    search_fields=["full_name", "email", "phone"],
)

EntityRegistry.register(
    entity_type="developers",
    endpoint="/property-manager/property-developers",
    columns=[
        ("name", "Name"),
        ("propertiesCount", "Number of properties"),
        ("primaryContactName", "Primary contact name"),
        ("primaryContactNumber", "Primary contact number"),
        ("primaryContactEmail", "Primary contact email"),
        ("status", "Status"),
        ("dateAdded", "Date added"),
    ],
    sort_options=[
        ("dateAdded", "Date added"),
        ("propertiesCount", "Number of properties"),
        ("name", "Name"),
        ("status", "Status"),
    ],
    default_sort_key="dateAdded",
    default_sort_direction=SortDirection.desc,
    page_size=15,
    list_mode=ListMode.client_sort,
    search_fields=["name", "primary_contact_name", "primary_contact_email"],
    filter_keys=["country", "city"],
    field_map={
        "propertiesCount": "properties_count",
        "primaryContactName": "primary_contact_name",
        "primaryContactNumber": "primary_contact_number",
        "primaryContactEmail": "primary_contact_email",
        "dateAdded": "created_at",
    },
)

EntityRegistry.register(
    entity_type="owners",
    endpoint="/property-manager/owners",
    columns=[
        ("ownerId", "Owner ID"),
        ("ownerType", "Type"),
        ("name", "Name"),
        ("nationality", "Nationality"),
        ("phone", "Phone"),
        ("status", "Status"),
    ],
    sort_options=[
        ("created_at", "Date added"),
        ("name", "Name"),
        ("owner_type", "Type"),
        ("status", "Status"),
    ],
    default_sort_key="created_at",
    default_sort_direction=SortDirection.desc,
    page_size=50,
    search_fields=["name", "phone", "nationality"],
    field_map={"ownerId": "owner_id", "ownerType": "owner_type"},
)

EntityRegistry.register(
    entity_type="inventory",
    endpoint="/property-manager/inventories",
    columns=[
        ("id", "ID"),
        ("type", "Type"),
        ("name", "Name"),
        ("purchasePrice", "Purchase Price"),
        ("property", "Property"),
        ("condition", "Condition"),
        ("quantity", "Quantity", False),
        ("roomName", "Room", False),
    ],
    sort_options=[
        ("created_at", "Date added"),
        ("name", "Name"),
        ("type", "Type"),
        ("purchase_price", "Purchase Price"),
    ],
    default_sort_key="created_at",
    default_sort_direction=SortDirection.desc,
    page_size=50,
    search_fields=["name", "type"],
    field_map={
        "purchasePrice": "purchase_price",
        "property": "property_name",
        "roomName": "room_name",
    },
)

EntityRegistry.register(
    entity_type="tenancy_contracts",
    endpoint="/property-manager/tenancy-contracts",
    columns=[
        ("tenancyId", "Tenancy ID"),
        ("property", "Property"),
        ("tenant", "Tenant"),
        ("owner", "Owner"),
        ("rentAmount", "Rent Amount"),
        ("paymentFrequency", "Payment Frequency"),
        ("startDate", "Start Date"),
        ("endDate", "End Date"),
        ("status", "Status"),
    ],
    sort_options=[
        ("dateAdded", "Date added"),
        ("tenancyId", "Tenancy ID"),
        ("rentAmount", "Rent Amount"),
        ("status", "Status"),
    ],
    default_sort_key="dateAdded",
    default_sort_direction=SortDirection.desc,
    page_size=15,
    list_mode=ListMode.client_sort,
    search_fields=["tenancy_id", "tenant_name", "property_name"],
    field_map={
        "tenancyId": "tenancy_id",
        "property": "property_name",
        "tenant": "tenant_name",
        "owner": "owner_name",
        "rentAmount": "rent_amount",
        "paymentFrequency": "payment_frequency",
        "startDate": "start_date",
        "endDate": "end_date",
        "dateAdded": "created_at",
    },
)

EntityRegistry.register(
    entity_type="properties",
    endpoint="/property-manager/properties",
    columns=[
        ("propertyId", "Property ID"),
        ("project", "Project"),
        ("developer", "Developer"),
        ("owner", "Owner"),
        ("propertyType", "Property Type"),
        ("status", "Status"),
    ],
    sort_options=[
        ("dateAdded", "Date added"),
        ("propertyId", "Property ID"),
        ("project", "Project"),
        ("status", "Status"),
    ],
    default_sort_key="dateAdded",
    default_sort_direction=SortDirection.desc,
    page_size=15,
    list_mode=ListMode.client_sort,
    search_fields=["property_id", "project_name", "developer_name"],
    field_map={
        "propertyId": "property_id",
        "project": "project_name",
        "developer": "developer_name",
        "owner": "owner_name",
        "propertyType": "property_type",
        "dateAdded": "created_at",
    },
)

EntityRegistry.register(
    entity_type="projects",
    endpoint="/property-manager/projects",
    columns=[
        ("name", "Project"),
        ("developer", "Developer"),
        ("projectType", "Project Type"),
        ("city", "City"),
        ("country", "Country"),
        ("status", "Status"),
        ("dateAdded", "Date added", False),
    ],
    sort_options=[
        ("dateAdded", "Date added"),
        ("name", "Project"),
        ("status", "Status"),
    ],
    default_sort_key="dateAdded",
    default_sort_direction=SortDirection.desc,
    page_size=15,
    list_mode=ListMode.client_sort,
    search_fields=["name", "developer_name", "city"],
    filter_keys=["project_type", "status", "developer_id", "country", "city"],
    field_map={
        "developer": "developer_name",
        "projectType": "project_type",
        "dateAdded": "created_at",
    },
)

EntityRegistry.register(
    entity_type="reports",
    endpoint="/property-manager/property-view",
    columns=[
        ("property", "Property"),
        ("propertyId", "ID"),
        ("totalIncome", "Total Income"),
        ("totalExpense", "Total Expense"),
        ("pendingDues", "Pending Dues"),
        ("netIncome", "Net Income"),
    ],
    sort_options=[
        ("property", "Property name"),
        ("totalIncome", "Total Income"),
        ("totalExpense", "Total Expense"),
        ("netIncome", "Net Income"),
    ],
    default_sort_key="property",
    default_sort_direction=SortDirection.asc,
    list_mode=ListMode.client,
    search_fields=["property_name", "property_id"],
    field_map={
        "property": "property_name",
        "propertyId": "property_id",
        "totalIncome": "total_income",
        "totalExpense": "total_expense",
        "pendingDues": "pending_dues",
        "netIncome": "net_income",
    },
)
