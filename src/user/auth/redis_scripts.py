"""
Redis Lua scripts for token management.

This module contains Lua scripts for atomic operations on tokens in Redis.
These scripts ensure that token operations are performed atomically,
preventing race conditions in token validation and rotation.
"""

# Script for atomically claiming a refresh token record during rotation.
# Only one of several concurrent callers presenting the same token gets the
# record back; every other caller receives nil.
CLAIM_REFRESH_TOKEN_SCRIPT = """
local refresh_key = KEYS[1]
local user_tokens_key = KEYS[2]
local raw_token = ARGV[1]

local record = redis.call('GET', refresh_key)
if not record then
    return nil
end

redis.call('DEL', refresh_key)
redis.call('LREM', user_tokens_key, 0, raw_token)

return record
"""
