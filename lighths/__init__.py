from . import constants
from . import onion
from . import consensus
from . import ring
from . import circuit
from . import stream
from . import http
from . import exchange
from . import descriptor
from . import crypto
from . import introduce
from . import cache
