"""GraphQL documents for the Shopify Admin API (2024-10)."""

from __future__ import annotations

PRODUCT_FIELDS = """
fragment ProductFields on Product {
  id
  title
  handle
  vendor
  descriptionHtml
  tags
  variants(first: 100) {
    edges {
      node {
        id
        sku
        barcode
        price
        inventoryQuantity
        inventoryItem {
          id
        }
      }
    }
  }
  images(first: 50) {
    edges {
      node {
        url
      }
    }
  }
}
"""

VARIANT_FIELDS = """
fragment VariantFields on ProductVariant {
  id
  sku
  barcode
  price
  inventoryQuantity
  inventoryItem {
    id
  }
}
"""

SEARCH_PRODUCTS_QUERY = (
    """
query searchProducts($query: String!, $first: Int!) {
  products(first: $first, query: $query) {
    edges {
      node {
        ...ProductFields
      }
    }
  }
}
"""
    + PRODUCT_FIELDS
)

PRODUCT_BY_ID_QUERY = (
    """
query productById($id: ID!) {
  product(id: $id) {
    ...ProductFields
  }
}
"""
    + PRODUCT_FIELDS
)

PRODUCT_CREATE_MUTATION = (
    """
mutation productCreate($product: ProductCreateInput!) {
  productCreate(product: $product) {
    product {
      ...ProductFields
    }
    userErrors {
      field
      message
    }
  }
}
"""
    + PRODUCT_FIELDS
)

PRODUCT_UPDATE_MUTATION = (
    """
mutation productUpdate($product: ProductUpdateInput!) {
  productUpdate(product: $product) {
    product {
      ...ProductFields
    }
    userErrors {
      field
      message
    }
  }
}
"""
    + PRODUCT_FIELDS
)

PRODUCT_DELETE_MUTATION = """
mutation productDelete($input: ProductDeleteInput!) {
  productDelete(input: $input) {
    deletedProductId
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_CREATE_MEDIA_MUTATION = """
mutation productCreateMedia($media: [CreateMediaInput!]!, $productId: ID!) {
  productCreateMedia(media: $media, productId: $productId) {
    media {
      mediaContentType
      status
    }
    mediaUserErrors {
      field
      message
    }
  }
}
"""

VARIANTS_BULK_CREATE_MUTATION = (
    """
mutation productVariantsBulkCreate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkCreate(productId: $productId, variants: $variants) {
    productVariants {
      ...VariantFields
    }
    userErrors {
      field
      message
    }
  }
}
"""
    + VARIANT_FIELDS
)

VARIANTS_BULK_UPDATE_MUTATION = (
    """
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants {
      ...VariantFields
    }
    userErrors {
      field
      message
    }
  }
}
"""
    + VARIANT_FIELDS
)

INVENTORY_ITEM_UPDATE_MUTATION = """
mutation inventoryItemUpdate($id: ID!, $input: InventoryItemInput!) {
  inventoryItemUpdate(id: $id, input: $input) {
    inventoryItem {
      id
      sku
    }
    userErrors {
      field
      message
    }
  }
}
"""

PRIMARY_LOCATION_QUERY = """
query primaryLocation {
  locations(first: 1) {
    edges {
      node {
        id
      }
    }
  }
}
"""

INVENTORY_SET_QUANTITIES_MUTATION = """
mutation inventorySetQuantities($input: InventorySetQuantitiesInput!) {
  inventorySetQuantities(input: $input) {
    inventoryAdjustmentGroup {
      reason
    }
    userErrors {
      field
      message
    }
  }
}
"""
