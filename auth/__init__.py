"""auth/ -- Token and credential engines for trustgate.

  csrf.py       stateless HMAC anti-forgery tokens
  passwords.py  PBKDF2-HMAC-SHA256 / Argon2id password records
  tokens.py     HS256 session JWTs
  context.py    TrustContext, the object every engine is built from

Layer rule: auth/ imports from core/ and third-party libraries only.
core/ never imports from auth/.
"""
