"""
Custom exception hierarchy for netmidi.

## Exception Hierarchy

```
NetMidiError (base)
├── InvalidArgumentError        (also a ValueError)
├── UnsupportedOperationError   (also a NotImplementedError)
└── ConfigurationError
    ├── ConfigFileInvalidError
    └── ConfigValidationError
```

Caller contract violations (out-of-range MIDI fields, missing payloads)
raise `InvalidArgumentError` synchronously. Failures inside running
services are never raised to the caller; they surface as the service's
ERROR status instead.

### Example

```python
from netmidi.midi import codec
from netmidi.exceptions import InvalidArgumentError

try:
    codec.note_on(channel=17, note=60, velocity=100)
except InvalidArgumentError as e:
    print(e.user_message)   # Invalid value for 'channel': must be in [1, 16]
```
"""

from .base import NetMidiError
from .config import ConfigFileInvalidError, ConfigurationError, ConfigValidationError
from .handlers import format_error_for_display, wrap_pydantic_error
from .service import InvalidArgumentError, UnsupportedOperationError

__all__ = [
    "ConfigFileInvalidError",
    "ConfigValidationError",
    # Config
    "ConfigurationError",
    # Service contract
    "InvalidArgumentError",
    # Base
    "NetMidiError",
    "UnsupportedOperationError",
    # Handlers
    "format_error_for_display",
    "wrap_pydantic_error",
]
