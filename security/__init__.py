"""
Transport security for the MCP DB Server

- trust_bundle: Download and on-disk caching of the AWS RDS certificate bundle
"""
