"""
Stable badge colors for arbitrary labels.

Each view creates its own ColorBag and drops it when the view goes away, so colors are
stable within a view but never shared between views.
"""

PALETTE = (
    "red",
    "orange",
    "yellow",
    "green",
    "teal",
    "blue",
    "cyan",
    "purple",
    "pink",
    "linkedin",
    "facebook",
    "whatsapp",
    "twitter",
    "telegram",
)

FALLBACK_COLOR = "gray"


def label_hash(label: str) -> int:
    """Sum of the character codes. Collides easily, but is the same for the same string."""
    return sum(ord(char) for char in label)


class ColorBag:
    def __init__(self, palette=PALETTE, fallback=FALLBACK_COLOR):
        self.palette = tuple(palette)
        self.fallback = fallback
        self._index_to_label: dict[int, str] = {}
        self._label_to_index: dict[str, int] = {}

    def reserve_color_for_id(self, label: str) -> str:
        """
        Returns the color reserved for `label`, reserving one on first use.

        The hash picks a starting slot; taken slots are skipped by probing forward. Once
        every slot is taken new labels get the fallback color and are not remembered.
        """
        if label in self._label_to_index:
            return self.palette[self._label_to_index[label]]

        size = len(self.palette)
        start = label_hash(label) % size if size else 0
        for offset in range(size):
            index = (start + offset) % size
            if index not in self._index_to_label:
                self._index_to_label[index] = label
                self._label_to_index[label] = index
                return self.palette[index]

        return self.fallback

    def reserved(self) -> dict[str, str]:
        return {label: self.palette[index] for label, index in self._label_to_index.items()}

    def __len__(self):
        return len(self._label_to_index)
