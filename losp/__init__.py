# Core type aliases for Losp's data model.
# Runtime values are plain Python objects (see losp.types.value for the closed
# set); source is parsed into the node types of losp.reader.nodes.
#
# Naming guidance:
# - Expression: use in reader/compiler code for parsed syntax.
# - LospValue:  use in VM/runtime code for evaluated values.

from losp.reader.nodes import Expression
from losp.types.value import Value as LospValue

__version__ = "0.1.0"

__all__ = ["Expression", "LospValue", "__version__"]
