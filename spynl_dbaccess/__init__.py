from spynl_dbaccess.database import (
    CollectionWrapper,
    Database,
    DocumentNotFound,
    ForbiddenOperation,
)
