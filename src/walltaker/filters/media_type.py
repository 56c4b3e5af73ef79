"""
Media type filtering for search results.

Links that may not display motion content only receive still images.
"""

from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from walltaker.filters.base import Filter, FilterResult, PostLike, file_extension


STILL_IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({'png', 'jpg', 'bmp', 'webp'})


class StillImageFilter(Filter):
    """
    Pass only posts whose file is a still image.

    Configuration options:
    - extensions: Allowed file extensions (default: png, jpg, bmp, webp)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        extensions = self.config.get('extensions', STILL_IMAGE_EXTENSIONS)
        self.extensions = frozenset(ext.lower().lstrip('.') for ext in extensions)

    @property
    def name(self) -> str:
        return "Still Image Filter"

    def apply(self, post: PostLike) -> FilterResult:
        ext = file_extension(post)
        if ext in self.extensions:
            return FilterResult(passed=True, reason=f"'{ext}' is a still image",
                                metadata={"detected_extension": ext})

        return FilterResult(
            passed=False,
            reason=f"File extension '{ext or 'unknown'}' is not a still image",
            metadata={"detected_extension": ext, "allowed_extensions": sorted(self.extensions)}
        )


_still_images = StillImageFilter()


def filter_posts(posts: Sequence[PostLike], allow_motion: bool) -> List[PostLike]:
    """
    Drop motion content unless the link allows it.

    Args:
        posts: Search results, in upstream order
        allow_motion: Whether videos and animations may be shown

    Returns:
        A new list; the input sequence is left untouched
    """
    if allow_motion:
        return list(posts)
    return _still_images.filter(posts)
