"""
Tooling to approve manually-gated Wercker pipelines.
"""
