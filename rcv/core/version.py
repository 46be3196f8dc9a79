"""RCV - version constants.

Keep this module tiny and dependency-free. It is imported by many places
(core models, geometry, UI) and must not have side effects.
"""

APP_NAME = "RamificadorConversaciones"
APP_SHORT = "RCV"

# App semantic version (must match patch notes / docs).
APP_VERSION = "0.4.2"

# Centro del lienzo para conversaciones nuevas (coords canvas, px).
# NOTE: keep stable; el layout ubica la raíz exactamente acá.
DEFAULT_CANVAS_CENTER = (800.0, 400.0)

# Nombre convencional de la rama raíz.
ROOT_BRANCH_ID = "main"

# Duración del resaltado al navegar a un mensaje heredado (ms).
HIGHLIGHT_CLEAR_MS = 3000
