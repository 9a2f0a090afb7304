from spynl_queryfilter.catalog import (
    OPERATORS,
    OperatorCatalog,
    canonical_token,
    is_operator_token,
)
from spynl_queryfilter.exceptions import (
    DepthExceeded,
    InvalidArgument,
    QueryFilterException,
    UnknownGroup,
)
from spynl_queryfilter.permissions import PermissionSet, parse_mask
from spynl_queryfilter.resolver import GroupResolver
from spynl_queryfilter.sanitizer import (
    MAX_DEPTH,
    Sanitizer,
    is_mapping,
    is_ordered_sequence,
)
from spynl_queryfilter.settings import sanitizer_from_settings

# bitmask constants, e.g. QUERY.LOGICAL | QUERY.COMPARISON
QUERY = OPERATORS.masks('query')
UPDATE = OPERATORS.masks('update')
PIPELINE = OPERATORS.masks('pipeline')
PROJECTION = OPERATORS.masks('projection')
