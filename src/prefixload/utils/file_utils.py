"""File utility functions."""

from typing import Optional


class FileHelper:
    """Helper class for file operations."""

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        if size_bytes == 0:
            return "0 B"

        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        i = 0

        while size_bytes >= 1024 and i < len(size_names) - 1:
            size_bytes /= 1024.0
            i += 1

        return f"{size_bytes:.1f} {size_names[i]}"

    @staticmethod
    def build_remote_key(cloud_dir: str, file_name: str) -> str:
        """Join a remote directory and a file name into an object key.

        Backslashes are normalized and duplicate or leading slashes dropped, so
        ``"backups/db/"`` and ``"/backups/db"`` both give ``"backups/db/<name>"``.
        An empty directory puts the object at the bucket root.

        Args:
            cloud_dir: Remote directory inside the bucket
            file_name: Base name of the local file

        Returns:
            Object key
        """
        normalized = cloud_dir.replace('\\', '/').strip('/')
        if not normalized:
            return file_name
        return f"{normalized}/{file_name}"

    @staticmethod
    def decode_file_name(raw_name: str) -> Optional[str]:
        """Return a directory entry name as text, or None if it is not valid text.

        On POSIX, names that are not valid in the filesystem encoding come back
        from ``os.scandir`` with surrogate escapes; those cannot be used as an
        object key.

        Args:
            raw_name: Entry name from ``os.scandir``

        Returns:
            The name, or None
        """
        try:
            raw_name.encode('utf-8')
        except UnicodeEncodeError:
            return None
        return raw_name
