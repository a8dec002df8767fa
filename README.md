# pgproto

Building blocks for the client side of the PostgreSQL frontend/backend
protocol (version 3.0). Python values go in and the exact bytes PostgreSQL
expects come out. Bytes in PostgreSQL's binary value format go in and Python
values come out. The library assumes that `client_encoding` is `UTF8`.

Only the standard library is needed.

## Modules

- `pgproto.frontend` builds the messages a client sends. It covers
  `startup_message`, `ssl_request`, `cancel_request`, `query`, `parse`,
  `bind`, `describe`, `execute`, `close`, `sync`, `copy_data`, `copy_done`,
  `copy_fail`, `password_message`, `sasl_initial_response`, `sasl_response`
  and `terminate`. Each function returns the whole message as `bytes`.
- `pgproto.authentication` has `md5_hash`, the reply to an MD5 password
  challenge.
- `pgproto.sasl` has `ScramSha256`, the client side of SCRAM-SHA-256 and
  SCRAM-SHA-256-PLUS. `ChannelBinding` selects the channel binding mode,
  and there are parsers for the server's first and final messages.
- `pgproto.password` hashes passwords on the client for commands such as
  `ALTER ROLE ... PASSWORD`. `scram_sha_256` builds a SCRAM verifier and
  `md5` builds the older MD5 hash.
- `pgproto.scalars` encodes and decodes simple values: bool, bytea, text,
  `"char"`, int2/int4/int8, oid, pg_lsn, float4/float8, timestamp, date,
  time, macaddr, uuid, ltree, lquery, ltxtquery, hstore and bit/varbit
  (`Varbit`).
- `pgproto.compound` encodes and decodes compound values:
  - arrays: `Array` and `ArrayDimension`;
  - ranges: `Range`, `RangeBound` and `BoundKind`;
  - `Point`, `Box` and `Path`;
  - inet: `Inet`.
- `pgproto.escape` has `escape_literal` and `escape_identifier`.
- `pgproto.wire` holds the shared pieces:
  - `ProtocolError`, a `ValueError` raised for values that do not fit the
    wire format and for malformed buffers;
  - `IsNull`;
  - the length helpers `checked_i16`, `checked_i32` and `encode_nullable`.
- `pgproto.catalog` reads the server's catalogue source files:
  - `DatParser` and `parse_types` read `pg_type.dat` and `pg_range.dat` into
    `PgType` records keyed by OID;
  - `parse_errcodes` reads `errcodes.txt` into a mapping from SQLSTATE code
    to constant names.

## Examples

### Escaping

```python
from pgproto.escape import escape_identifier, escape_literal

escape_identifier('my "table"')   # '"my ""table"""'
escape_literal("it's")            # "'it''s'"
escape_literal("back\\slash")     # " E'back\\\\slash'"
```

Use parameterised queries where you can. Do not escape the parameters of
such a query.

### Frontend messages

```python
from pgproto import frontend

startup = frontend.startup_message({"user": "app", "database": "app"})
simple = frontend.query("SELECT 1")
prepare = frontend.parse("", "SELECT $1::int4", [23])
goodbye = frontend.terminate()
```

`bind` takes a serializer. The serializer turns each parameter into its
encoded bytes, or into `None` for SQL `NULL`. If the serializer raises, or
the message cannot be encoded, `bind` raises `BindError`.

### Binary values

```python
from pgproto.scalars import int4_from_sql, int4_to_sql
from pgproto.compound import inet_from_sql, inet_to_sql

data = int4_to_sql(0x01020304)    # b"\x01\x02\x03\x04"
int4_from_sql(data)               # 16909060

inet_from_sql(inet_to_sql("192.0.2.1", 24)).netmask   # 24
```

A decoder raises `ProtocolError` when its buffer has the wrong size or holds
malformed data.

### MD5 authentication

```python
from pgproto.authentication import md5_hash

password = b"password"
response = md5_hash(b"app", password, bytes([0x2A, 0x3D, 0x8F, 0xE0]))
# send `response` in a PasswordMessage
```

### SCRAM-SHA-256 authentication

In this example, `server_first` and `server_final` stand for the payloads
that your code received from the server.

```python
from pgproto.sasl import ChannelBinding, ScramSha256

password = b"password"
scram = ScramSha256(password, ChannelBinding.unsupported())
first = scram.message()        # send in SASLInitialResponse
scram.update(server_first)     # AuthenticationSASLContinue payload
final = scram.message()        # send in SASLResponse
scram.finish(server_final)     # AuthenticationSASLFinal payload
```

`finish` raises `ScramError` if the server's signature does not verify.
Authentication has succeeded only once it returns.

### Hashing a password on the client

```python
from pgproto.password import md5, scram_sha_256

password = b"password"
verifier = scram_sha_256(password)   # "SCRAM-SHA-256$4096:..."
legacy = md5(password, "app")        # "md5..."
```

## What it does not do

- It opens no connections and handles no sockets or TLS.
- It does not parse the messages that the server sends. Your code must split
  server messages itself. It can then pass their payloads to the decoders and
  to `ScramSha256`.
- It has no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```