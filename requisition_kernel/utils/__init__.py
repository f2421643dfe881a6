"""Utility modules for the requisition kernel."""

from requisition_kernel.utils.hashing import canonicalize_json, hash_audit_entry, hash_payload

__all__ = ["canonicalize_json", "hash_audit_entry", "hash_payload"]
