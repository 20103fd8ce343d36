"""vidcurator core package.

Classifies downloaded video files, keeps a catalog of them and links
them into a movie/TV library layout without touching the originals.

- **classifier**: Filename to title and movie/episode classification
- **file_discovery**: Extension and ignore-pattern filtering of source files
- **scanner**: Walks the watched root and feeds the catalog
- **persistence**: SQLite catalog of discovered titles
- **destination_builder**: Grouping, canonical titles and relative link math
- **organizer**: Creates the library symlinks for pending catalog rows
- **watcher**: Change notifications and the debounce loop
"""

from .classifier import Classification, ClassifierPatterns, NamingResult, classify
from .organizer import Organizer
from .scanner import Scanner
from .version import __version__

__all__ = [
    "__version__",
    "Classification",
    "ClassifierPatterns",
    "NamingResult",
    "Organizer",
    "Scanner",
    "classify",
]
