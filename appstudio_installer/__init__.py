"""
AppStudio installer for end-to-end test clusters.

Clones infra-deployments, runs its preview bootstrap script and applies the
post-install fixups the e2e suites rely on.
"""
