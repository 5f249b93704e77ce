"""
Relational storage for profiles, file metadata and sheet summaries.

Modules:
    client: Pooled pymysql client
    schema_manager: Applies the bundled SQL migrations
    policies: Per-user row and object access rules
    repositories: Policy-scoped table access
"""
