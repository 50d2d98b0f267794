"""Thin query wrappers over the Supabase tables, one module per concern."""
