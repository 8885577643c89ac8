"""
Theurgy - Command implementations for Horreum.

Each module corresponds to top-level CLI commands:
- init:     Create a key and record endpoint settings in ~/.horreum/.env
- run:      Store a value, wait for it to be mined, read it back twice
- retrieve: Read the stored value
- store:    Store a value (``store``) and look up receipts (``receipt``)
"""
