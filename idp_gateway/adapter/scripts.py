"""
Lua scripts for the store operations that must be atomic on a single key.
"""

# KEYS[1] = primary key, ARGV[1] = consumed timestamp.
# Marks the record consumed only if it exists and was not consumed before;
# HSETNX leaves the key's TTL untouched.
CONSUME = """
if redis.call('HEXISTS', KEYS[1], 'payload') == 0 then
  return 0
end
redis.call('HSETNX', KEYS[1], 'consumed', ARGV[1])
return 1
"""

# KEYS[1] = grant set, ARGV[1] = member TTL (0 = none), ARGV[2..] = the
# primary key and its secondary-index keys.
# The set's expiry only ever grows to cover its longest-lived member.
ADD_TO_GRANT = """
local ttl = redis.call('TTL', KEYS[1])
for i = 2, #ARGV do
  redis.call('SADD', KEYS[1], ARGV[i])
end
local expires_in = tonumber(ARGV[1])
if expires_in == 0 then
  if ttl >= 0 then
    redis.call('PERSIST', KEYS[1])
  end
elseif ttl == -2 or (ttl >= 0 and ttl < expires_in) then
  redis.call('EXPIRE', KEYS[1], expires_in)
end
return 1
"""
