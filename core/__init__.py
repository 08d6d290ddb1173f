"""core/ -- Kernel shared by every trustgate engine: settings, errors,
byte-level crypto helpers, and the secret store.

Layer rule: core/ has no reverse dependencies. It may not import from auth/.
"""
