"""
Bulk operation GraphQL queries and mutations.

This module contains bulk operation management:
- Starting bulk queries and bulk mutations
- Bulk operation status and monitoring
"""

# Fields requested for every BulkOperation snapshot
BULK_OPERATION_FIELDS = """
      id
      status
      errorCode
      createdAt
      completedAt
      objectCount
      fileSize
      url
      partialDataUrl
"""

# Start a bulk query, the nested query travels as the $operation variable
BULK_OPERATION_RUN_QUERY_MUTATION = f"""
mutation bulkOperationRunQuery($operation: String!) {{
  bulkOperationRunQuery(query: $operation) {{
    bulkOperation {{{BULK_OPERATION_FIELDS}    }}
    userErrors {{
      field
      message
    }}
  }}
}}
"""

# Start a bulk mutation, $operation is the mutation to run for each staged input line
BULK_OPERATION_RUN_MUTATION_MUTATION = f"""
mutation bulkOperationRunMutation($operation: String!) {{
  bulkOperationRunMutation(mutation: $operation) {{
    bulkOperation {{{BULK_OPERATION_FIELDS}    }}
    userErrors {{
      field
      message
    }}
  }}
}}
"""

# Bulk operation status query
BULK_OPERATION_STATUS_QUERY = f"""
query GetBulkOperationStatus($id: ID!) {{
  node(id: $id) {{
    ... on BulkOperation {{{BULK_OPERATION_FIELDS}    }}
  }}
}}
"""

BULK_RUN_QUERY_FIELD = "bulkOperationRunQuery"
BULK_RUN_MUTATION_FIELD = "bulkOperationRunMutation"


def get_start_mutation(is_mutation: bool) -> tuple[str, str]:
    """
    Select the start document for a bulk run.

    Args:
        is_mutation: True for bulkOperationRunMutation, False for bulkOperationRunQuery

    Returns:
        tuple: (GraphQL document, root response field)
    """
    if is_mutation:
        return BULK_OPERATION_RUN_MUTATION_MUTATION, BULK_RUN_MUTATION_FIELD
    return BULK_OPERATION_RUN_QUERY_MUTATION, BULK_RUN_QUERY_FIELD


__all__ = [
    "BULK_OPERATION_RUN_QUERY_MUTATION",
    "BULK_OPERATION_RUN_MUTATION_MUTATION",
    "BULK_OPERATION_STATUS_QUERY",
    "BULK_RUN_QUERY_FIELD",
    "BULK_RUN_MUTATION_FIELD",
    "get_start_mutation",
]
