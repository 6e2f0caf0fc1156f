"""Servers exposing the query service: MCP tools and an HTTP JSON API."""
