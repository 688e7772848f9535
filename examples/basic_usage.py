#!/usr/bin/env python3
"""
Example: Basic usage of SeedProbe as a Python library
"""

from seedprobe import DetectionService, SchemaSnapshot, load_config

# Describe the schema (or load one with SchemaSnapshot.from_file)
snapshot = SchemaSnapshot.build(
    tables=["users", "accounts", "teams", "team_members", "posts"],
    relationships=[
        ("accounts", "users", "user_id"),
        ("accounts", "team_members", "member_id"),
        ("posts", "users", "user_id"),
        ("posts", "teams", "team_id"),
    ],
    columns={"posts": ["id", "user_id", "team_id", "body"]},
)

config = load_config()
with DetectionService.from_config(config) as service:
    outcome = service.detect(snapshot, database_identity="postgres://localhost/app")

result = outcome.result
print(f"Architecture: {result.architecture.value if result.architecture else 'undetermined'}")
print(f"Confidence: {result.overall_confidence:.2f} (cached: {outcome.from_cache})")
for line in result.reasoning:
    print(f"  {line}")
for warning in result.warnings:
    print(f"  ! {warning}")
