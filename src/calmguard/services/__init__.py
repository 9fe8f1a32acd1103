"""Service layer — the schedule clock, rule registry, and the two hosts.

Services may import from domain, infrastructure, rules, and messaging.
They must never import from commands or output.
"""
