"""
File system traversal: walk directories and collect PHP source files.

This module recursively traverses a Laravel project to find PHP source
files (.php) for convention checks. Blade templates (``*.blade.php``) are
not PHP classes or route files and are always skipped, as are dependency,
cache and build directories.

Typical usage:
    from pathlib import Path
    from larastyle.traversal import find_php_files

    php_files = find_php_files(Path("./my-app"))

    # Custom ignore patterns
    php_files = find_php_files(Path("./my-app"), ignore_dirs={"vendor", "legacy"})
"""

import logging
from pathlib import Path
from typing import Optional, Set

logger = logging.getLogger(__name__)

BLADE_SUFFIX = ".blade.php"

# Files that mark the root of a Laravel (Composer) project
PROJECT_MARKERS = ("artisan", "composer.json")

# Default directories to ignore during traversal
DEFAULT_IGNORE_DIRS: frozenset[str] = frozenset(
    {
        # Composer and npm dependencies
        "vendor",
        "node_modules",
        # Laravel runtime directories (compiled views, caches, logs)
        "storage",
        "bootstrap",
        "public",
        # Test suites follow PHPUnit conventions (snake_case test methods)
        "tests",
        # Version control
        ".git",
        ".svn",
        ".hg",
        # IDE and editor directories
        ".vscode",
        ".idea",
        # Cache directories
        ".cache",
        ".phpunit.cache",
    }
)


def is_blade_template(path: Path) -> bool:
    """
    Check if a file is a Blade template.

    Examples:
        >>> is_blade_template(Path("resources/views/welcome.blade.php"))
        True
        >>> is_blade_template(Path("app/Models/User.php"))
        False
    """
    return path.name.lower().endswith(BLADE_SUFFIX)


def is_php_file(path: Path) -> bool:
    """
    Check if a file is a PHP source file (.php extension, not a Blade template).

    Examples:
        >>> is_php_file(Path("app/Http/Controllers/UserController.php"))
        True
        >>> is_php_file(Path("resources/views/home.blade.php"))
        False
        >>> is_php_file(Path("composer.json"))
        False
    """
    return path.suffix.lower() == ".php" and not is_blade_template(path)


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str] | frozenset[str]) -> bool:
    """
    Check if a directory should be ignored during traversal.

    Only the directory name is compared (case-sensitive), not the full path.
    """
    return dir_path.name in ignore_dirs


def find_project_root(start: Path) -> Optional[Path]:
    """
    Return the nearest directory at or above start holding ``artisan`` or
    ``composer.json``, or None outside any Laravel project.
    """
    current = start.resolve()
    if current.is_file():
        current = current.parent
    for directory in (current, *current.parents):
        if any((directory / marker).is_file() for marker in PROJECT_MARKERS):
            return directory
    return None


def find_php_files(
    root: Path,
    ignore_dirs: Optional[Set[str] | frozenset[str]] = None,
) -> list[Path]:
    """
    Recursively find all PHP source files in a directory tree.

    Args:
        root: Root directory to start traversal from.
        ignore_dirs: Directory names to skip. If None, uses DEFAULT_IGNORE_DIRS.

    Returns:
        Sorted list of absolute paths of all matching files.

    Raises:
        FileNotFoundError: If the root directory does not exist.
        NotADirectoryError: If root is not a directory.

    Notes:
        - Symbolic links are never followed, so a link cycle cannot loop.
        - Permission errors on subdirectories are logged but do not stop traversal.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS

    root = root.resolve()

    if not root.exists():
        logger.error("Root directory does not exist: %s", root)
        raise FileNotFoundError(f"Root directory does not exist: {root}")

    if not root.is_dir():
        logger.error("Root path is not a directory: %s", root)
        raise NotADirectoryError(f"Root path is not a directory: {root}")

    logger.info("Starting traversal from: %s", root)
    logger.debug("Ignoring directories: %s", sorted(ignore_dirs))

    collected_files: list[Path] = []
    pending = [root]
    while pending:
        current_dir = pending.pop()
        try:
            for entry in current_dir.iterdir():
                if entry.is_symlink():
                    logger.debug("Skipping symlink: %s", entry)
                    continue

                if entry.is_dir():
                    if should_ignore_directory(entry, ignore_dirs):
                        logger.debug("Ignoring directory: %s", entry)
                        continue
                    pending.append(entry)

                elif entry.is_file() and is_php_file(entry):
                    logger.debug("Found source file: %s", entry)
                    collected_files.append(entry)

        except PermissionError as e:
            logger.warning("Permission denied accessing directory %s: %s", current_dir, e)
        except OSError as e:
            logger.warning("Error accessing directory %s: %s", current_dir, e)

    # Sort for deterministic ordering
    collected_files.sort()

    logger.info(
        "Traversal complete: found %d source file(s) in %s",
        len(collected_files),
        root,
    )

    return collected_files
