from enum import Enum

class ReplyMode(str, Enum):
    ECHO = "ECHO"       # send the request back unchanged
    EMPTY = "EMPTY"     # zero-length datagram
    SILENT = "SILENT"   # never answer
    FIXED = "FIXED"     # answer with a configured payload
