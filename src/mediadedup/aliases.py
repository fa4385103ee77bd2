from mediadedup.core.models import KeepStrategy

KEEP_ALIASES = {
    "first": KeepStrategy.FIRST,
    "last": KeepStrategy.LAST,
    "largest": KeepStrategy.LARGEST,
    "smallest": KeepStrategy.SMALLEST,
    "best_quality": KeepStrategy.BEST_QUALITY,
    "best-quality": KeepStrategy.BEST_QUALITY,
}

KEEP_CHOICES = list(KEEP_ALIASES.keys())

KEEP_HELP_TEXT = (
    "Which file of each duplicate group is kept:\n"
    "  first        : first file in path order (default)\n"
    "  last         : last file in path order\n"
    "  largest      : largest file on disk\n"
    "  smallest     : smallest file on disk\n"
    "  best_quality : highest bitrate according to ffprobe\n"
    "Ties always go to the file that comes first in path order."
)

EXTENSIONS_HELP_TEXT = (
    "Comma-separated extensions to scan (e.g. mp3,flac,mkv).\n"
    "Use 'all' to scan every file. Default: common audio/video containers"
)

EPILOG_TEXT = """
Examples:
  Preview duplicates in a music library (nothing is changed)
  %(prog)s ~/Music

  Only look at mp3 and flac files, in the top-level directory only
  %(prog)s ~/Music --extensions mp3,flac --no-recursive

  Delete duplicates, keeping the largest copy, hashing on 8 threads
  %(prog)s ~/Music --force --keep largest --parallel 8

  Move duplicates into a separate folder and remember hashes between runs
  %(prog)s ~/Videos --force --trash ~/dupes --cache ~/.cache/mediadedup.db

  Write an operations log and JSON statistics
  %(prog)s ~/Music --log run.log --stats stats.json
"""
