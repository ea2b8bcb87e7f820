"""Pydantic models describing the catalog GraphQL payloads."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from feedsync.domain.model import RemoteProduct, RemoteVariant


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class CatalogBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class InventoryItemNode(CatalogBaseModel):
    id: str
    sku: str | None = None


class VariantNode(CatalogBaseModel):
    id: str
    sku: str | None = None
    barcode: str | None = None
    price: Decimal | None = None
    inventory_quantity: int | None = Field(default=None, alias="inventoryQuantity")
    inventory_item: InventoryItemNode | None = Field(default=None, alias="inventoryItem")

    @field_validator("sku", "barcode", mode="before")
    @classmethod
    def _normalize_codes(cls, value: object) -> object:
        return _blank_to_none(value)

    def to_domain(self) -> RemoteVariant:
        return RemoteVariant(
            id=self.id,
            sku=self.sku,
            barcode=self.barcode,
            price=self.price,
            inventory_item_id=self.inventory_item.id if self.inventory_item else None,
            inventory_quantity=self.inventory_quantity,
        )


class VariantEdge(CatalogBaseModel):
    node: VariantNode


class VariantConnection(CatalogBaseModel):
    edges: list[VariantEdge] = Field(default_factory=list[VariantEdge])


class ImageNode(CatalogBaseModel):
    url: str


class ImageEdge(CatalogBaseModel):
    node: ImageNode


class ImageConnection(CatalogBaseModel):
    edges: list[ImageEdge] = Field(default_factory=list[ImageEdge])


class ProductNode(CatalogBaseModel):
    id: str
    title: str = ""
    handle: str | None = None
    vendor: str | None = None
    description_html: str | None = Field(default=None, alias="descriptionHtml")
    tags: list[str] = Field(default_factory=list[str])
    variants: VariantConnection = Field(default_factory=VariantConnection)
    images: ImageConnection = Field(default_factory=ImageConnection)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> object:
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value

    def to_domain(self) -> RemoteProduct:
        return RemoteProduct(
            id=self.id,
            title=self.title,
            vendor=self.vendor or "",
            handle=self.handle,
            description=self.description_html or "",
            tags=frozenset(self.tags),
            variants=tuple(edge.node.to_domain() for edge in self.variants.edges),
            images=tuple(edge.node.url for edge in self.images.edges),
        )


class ProductEdge(CatalogBaseModel):
    node: ProductNode


class ProductConnection(CatalogBaseModel):
    edges: list[ProductEdge] = Field(default_factory=list[ProductEdge])


class ProductSearchData(CatalogBaseModel):
    products: ProductConnection

    def to_domain(self) -> list[RemoteProduct]:
        return [edge.node.to_domain() for edge in self.products.edges]


class UserError(CatalogBaseModel):
    field: list[str] | None = None
    message: str


class ProductPayload(CatalogBaseModel):
    product: ProductNode | None = None


class VariantsPayload(CatalogBaseModel):
    product_variants: list[VariantNode] = Field(
        default_factory=list[VariantNode], alias="productVariants"
    )

    def to_domain(self) -> list[RemoteVariant]:
        return [variant.to_domain() for variant in self.product_variants]


class DeletePayload(CatalogBaseModel):
    deleted_product_id: str | None = Field(default=None, alias="deletedProductId")


class LocationNode(CatalogBaseModel):
    id: str


class LocationEdge(CatalogBaseModel):
    node: LocationNode


class LocationConnection(CatalogBaseModel):
    edges: list[LocationEdge] = Field(default_factory=list[LocationEdge])


class LocationsData(CatalogBaseModel):
    locations: LocationConnection = Field(default_factory=LocationConnection)

    def first_id(self) -> str | None:
        return self.locations.edges[0].node.id if self.locations.edges else None
