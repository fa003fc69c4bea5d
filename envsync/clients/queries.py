# envsync/clients/queries.py
# Admin GraphQL documents, one block per entity type.

# =========================================================
# Collections
# =========================================================

COLLECTIONS_QUERY = """
query GetCollections($cursor: String) {
  collections(first: 250, after: $cursor) {
    edges { node { id handle title updatedAt } }
    pageInfo { hasNextPage endCursor }
  }
}
"""

COLLECTION_DETAILS_QUERY = """
query GetCollectionDetails($id: ID!) {
  collection(id: $id) {
    id
    handle
    title
    updatedAt
    description
    descriptionHtml
    sortOrder
    templateSuffix
    image { altText url }
    seo { title description }
    products(first: 250) {
      edges { node { id title handle status } }
    }
  }
}
"""

CREATE_COLLECTION_MUTATION = """
mutation createCollection($input: CollectionInput!) {
  collectionCreate(input: $input) {
    collection { id }
    userErrors { field message }
  }
}
"""

UPDATE_COLLECTION_MUTATION = """
mutation updateCollection($input: CollectionInput!) {
  collectionUpdate(input: $input) {
    collection { id }
    userErrors { field message }
  }
}
"""

COLLECTION_ADD_PRODUCTS_MUTATION = """
mutation collectionAddProducts($id: ID!, $productIds: [ID!]!) {
  collectionAddProducts(id: $id, productIds: $productIds) {
    collection { id }
    userErrors { field message }
  }
}
"""

# =========================================================
# Products
# =========================================================

PRODUCTS_QUERY = """
query GetProducts($cursor: String) {
  products(first: 250, after: $cursor) {
    edges { node { id handle title updatedAt } }
    pageInfo { hasNextPage endCursor }
  }
}
"""

PRODUCT_DETAILS_QUERY = """
query GetProductDetails($id: ID!) {
  product(id: $id) {
    id
    handle
    title
    updatedAt
    description
    descriptionHtml
    status
    vendor
    productType
    tags
    giftCardTemplateSuffix
    templateSuffix
    requiresSellingPlan
    seo { title description }
    category { id }
    options {
      name
      position
      values
      linkedMetafield { namespace key }
    }
    media(first: 20) {
      edges {
        node {
          mediaContentType
          status
          preview { image { url altText } }
        }
      }
    }
    metafields(first: 100) {
      edges { node { namespace key value type } }
    }
  }
}
"""

CREATE_PRODUCT_MUTATION = """
mutation CreateProduct($input: ProductInput!, $media: [CreateMediaInput!]) {
  productCreate(input: $input, media: $media) {
    product { id title handle }
    userErrors { field message }
  }
}
"""

UPDATE_PRODUCT_MUTATION = """
mutation UpdateProduct($input: ProductInput!, $media: [CreateMediaInput!]) {
  productUpdate(input: $input, media: $media) {
    product { id title handle }
    userErrors { field message }
  }
}
"""

CREATE_PRODUCT_OPTIONS_MUTATION = """
mutation productOptionsCreate($productId: ID!, $options: [OptionCreateInput!]!) {
  productOptionsCreate(productId: $productId, options: $options) {
    product { id }
    userErrors { field message }
  }
}
"""

# =========================================================
# Pages
# =========================================================

PAGES_QUERY = """
query GetPages($cursor: String) {
  pages(first: 250, after: $cursor) {
    edges { node { id handle title updatedAt } }
    pageInfo { hasNextPage endCursor }
  }
}
"""

PAGE_DETAILS_QUERY = """
query GetPageDetails($id: ID!) {
  page(id: $id) {
    id
    handle
    title
    updatedAt
    body
    bodySummary
    isPublished
    publishedAt
    templateSuffix
    metafields(first: 100) {
      edges { node { namespace key value type } }
    }
  }
}
"""

CREATE_PAGE_MUTATION = """
mutation CreatePage($page: PageCreateInput!) {
  pageCreate(page: $page) {
    page { id title handle }
    userErrors { code field message }
  }
}
"""

UPDATE_PAGE_MUTATION = """
mutation UpdatePage($id: ID!, $page: PageUpdateInput!) {
  pageUpdate(id: $id, page: $page) {
    page { id title handle }
    userErrors { code field message }
  }
}
"""

# =========================================================
# Files
# =========================================================

FILES_QUERY = """
query FilesQuery($cursor: String, $query: String) {
  files(first: 250, after: $cursor, query: $query) {
    edges {
      node {
        id
        alt
        updatedAt
        preview { image { url } status }
      }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

FILE_DETAILS_QUERY = """
query FileDetails($id: ID!) {
  node(id: $id) {
    ... on File {
      id
      alt
      updatedAt
      preview { image { url } status }
    }
  }
}
"""

FILE_CREATE_MUTATION = """
mutation fileCreate($files: [FileCreateInput!]!) {
  fileCreate(files: $files) {
    files { id alt createdAt }
    userErrors { field message }
  }
}
"""

FILE_UPDATE_MUTATION = """
mutation fileUpdate($files: [FileUpdateInput!]!) {
  fileUpdate(files: $files) {
    files { id alt }
    userErrors { field message }
  }
}
"""
