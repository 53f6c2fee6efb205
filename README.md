# cawebchat

The core of a small multi-user web chat. It keeps its data in one SQLite
database file. It uses only the standard library.

## What it covers

- **Field checks and Base64** (`cawebchat.str_fields`): nickname, name and
  password rules (`check_nickname`, `check_name`, `check_password`,
  `check_strong_password`), `is_orthodox_string` (valid UTF-8 with no NUL
  characters), and `base64_encode` / `base64_decode`. The decoder is strict. It
  raises `ChatError` on a wrong length, on bad characters or padding, and when
  the unused bits of the last group are not zero.
- **Login cookies** (`cawebchat.login_cookie`): a `LoginCookie` is stored as a
  cookie named `login_<seconds>_<nanoseconds>`. Its value is Base64 of the JSON
  `[nickname, password]`. The module provides:
  - `create_login_cookie`, `encode_login_cookie` and `decode_login_cookie`;
  - `select_login_cookies`, which returns nothing at all if any login cookie is
    malformed;
  - `select_oldest_login_cookie`;
  - `expired_login_cookies`, which gives the empty-valued cookies that overwrite
    old login cookies.
- **Localisation** (`cawebchat.localizator`): `Localizator` loads the
  `<range>.lang.json` files in a directory. Only ranges allowed by the whitelist
  are loaded, and `*` stands for the default range. It applies the
  `force-order` ranking. `get_right_locale` returns the file for the first
  preferred language range it knows, or the default file.
  `make_localizator_settings(assets_dir, config)` reads `config["lang"]["whitelist"]`
  and `config["lang"]["force-order"]` and uses `<assets_dir>/lang`.
- **Storage** (`cawebchat.db`, `cawebchat.store`):
  - `Database` is an SQLite connection. It takes `?N` placeholders, provides
    `execute`, `fetch_one`, `fetch_all` and `last_insert_rowid`, and has a
    `transaction()` context manager that rolls back when the block raises.
  - `store` holds `create_schema` and lookups of users, chats, messages, roles
    and nicknames.
- **Chat logic**:
  - `cawebchat.polling` reports changes since a client's history id. It covers
    the chat list, chat members, messages, and neighbouring messages (up to 15).
  - `cawebchat.messaging` sends and deletes messages.
  - `cawebchat.membership` creates chats, and adds, removes or lets members
    leave. Membership changes are recorded as system messages such as
    `"<uid>,summoned,<uid>"`.
- **Administration**:
  - `cawebchat.admin` has `add_user` and `admin_control_procedure`. The procedure
    understands `hello`, `8` (a reply with `terminate=True`),
    `updaterootpw <password>` and `adduser <nickname> <name> <password> <bio>`.
    In these commands a backslash makes the next character literal, spaces
    included.
  - `cawebchat.initialize` creates a fresh database.
- **API dispatch** (`cawebchat.api`):
  - `login_from_cookies` finds the logged-in user from the request cookies.
  - `handle_api(db, path, uid, body)` sends a JSON request body to the handler
    for one of the `/api/...` paths and returns the JSON reply text. The paths
    are `chatPollEvents`, `chatListPollEvents`, `getMessageNeighbours`,
    `sendMessage`, `deleteMessage`, `addMemberToChat`, `removeMemberFromChat`,
    `createChat` and `leaveChat`.

## Configuration

`initialize_website` and `find_sqlite_db_path` read a configuration mapping
shaped like this:

```python
config = {
    "database": {"type": "sqlite3", "file": "chat.db"},
}
```

Only the `sqlite3` type is accepted. The file path must not be empty and must
not start with `:`.

## Example

```python
from cawebchat.initialize import initialize_website, find_sqlite_db_path
from cawebchat.db import Database
from cawebchat.store import find_user_by_credentials

root_password = "password"
initialize_website(config, root_password)

with Database(find_sqlite_db_path(config)) as db:
    uid = find_user_by_credentials(db, "root", root_password)
```

`initialize_website` does the following:

- deletes any existing database file at the configured path and creates a new
  one;
- reserves the nicknames `unknown`, `undefined`, `null`, `none`, `None` and
  `NaN`;
- creates the root user with id `0`.

The root password must be a strong password: valid text of 8 to 150 bytes.

`find_user_by_credentials` returns the user's id, or `-1` when the nickname and
password do not match a user.

## Roles

A user's role in a chat is a `cawebchat.store.Role`:

| Role        | Meaning                                                     |
|-------------|-------------------------------------------------------------|
| `ADMIN`     | sends messages, deletes any user's messages, adds and removes members |
| `REGULAR`   | sends messages and deletes their own                        |
| `READ_ONLY` | can poll the chat but not send or delete                    |
| `DELETED`   | no longer a member                                          |

`stringify_user_chat_role` returns the role names that the API uses in its
replies: `admin`, `regular`, `read-only` and `not-a-member`.

## Errors

Failed checks, database failures and invalid requests raise
`cawebchat.errors.ChatError`.

Some API handlers do not raise for expected refusals. They return
`{"status": <negative code>}` instead:

- `create_chat` returns `-1` for a bad nickname or name, and `-2` when the
  nickname is taken.
- `add_member_to_chat` returns `-1` when no user has that nickname, and `-2`
  when the user is already a member.

## What it does not do

The package holds the chat's data and logic only. It does not include:

- an HTTP server or request parsing;
- HTML page rendering or templates;
- static asset serving;
- a network listener or client for admin commands;
- a command-line entry point.

Callers supply the cookies, request paths and bodies, and send the returned
text themselves.