"""
Database Configuration Package

Resolves PostgreSQL connection parameters for the MCP DB Server from the
process environment, a DATABASE_URL connection string, or a config.json
file in the working directory, in that order of precedence.

Modules:
- settings: Process-level settings and the LOGGING configuration
- descriptor: The immutable ConnectionDescriptor and its TLS settings
- resolver: ConfigResolver, which builds the descriptor
- errors: Error taxonomy shared by the server
"""
