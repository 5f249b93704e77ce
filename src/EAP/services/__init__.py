"""
Core services for the Excel Analytics Platform.

Packages:
    auth: Cognito sign-up, sign-in and sign-out
    storage: S3 object access and upload validation
    database: RDS client, schema migrations, row policies and repositories
    processing: Spreadsheet parsing and chart building
    analytics: Dashboard figures over the file list
    files: Upload, list, download, delete and open orchestration

Modules:
    profiles: User profile lifecycle
"""
