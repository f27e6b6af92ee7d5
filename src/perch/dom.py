"""In-memory document tree — the DOM boundary.

The runtime never renders anything. It only needs somewhere to insert
view fragments, record ``<script>``/``<link>`` tags, and find link
anchors. ``Document`` and ``Element`` are the minimum for that, and
``parse_fragment`` turns fetched HTML text into one root element.

Visibility toggling, diffing, and rendering belong to the component
layer and are not modelled here.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from html import escape
from html.parser import HTMLParser

from perch.errors import ParseError

# Elements that never have children or a closing tag
VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})


class Element:
    """A mutable element node.

    Attributes are kept as ``str | None`` values; ``None`` is a bare
    boolean attribute (``<div hidden>``).
    """

    __slots__ = ("attrs", "children", "parent", "tag", "text")

    def __init__(
        self,
        tag: str,
        attrs: Mapping[str, str | None] | None = None,
        *,
        text: str = "",
    ) -> None:
        self.tag = tag.lower()
        self.attrs: dict[str, str | None] = dict(attrs or {})
        self.children: list[Element] = []
        self.parent: Element | None = None
        self.text = text

    def __repr__(self) -> str:
        return f"<Element {self.tag} attrs={self.attrs!r} children={len(self.children)}>"

    # -- Tree mutation --

    def append(self, child: Element) -> Element:
        """Append *child*, detaching it from any previous parent."""
        if child.parent is not None:
            child.remove()
        child.parent = self
        self.children.append(child)
        return child

    def prepend(self, child: Element) -> Element:
        if child.parent is not None:
            child.remove()
        child.parent = self
        self.children.insert(0, child)
        return child

    def remove(self) -> None:
        """Detach this element from its parent. No-op when detached."""
        if self.parent is None:
            return
        self.parent.children.remove(self)
        self.parent = None

    # -- Attributes --

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    def has(self, name: str) -> bool:
        return name in self.attrs

    @property
    def hidden(self) -> bool:
        return "hidden" in self.attrs

    @hidden.setter
    def hidden(self, value: bool) -> None:
        if value:
            self.attrs["hidden"] = None
        else:
            self.attrs.pop("hidden", None)

    @property
    def classes(self) -> list[str]:
        return (self.attrs.get("class") or "").split()

    def add_class(self, name: str) -> None:
        classes = self.classes
        if name not in classes:
            classes.append(name)
            self.attrs["class"] = " ".join(classes)

    @property
    def root(self) -> Element:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    # -- Queries --

    def iter(self) -> Iterator[Element]:
        """Yield descendants in document order (self excluded)."""
        for child in self.children:
            yield child
            yield from child.iter()

    def find_all(
        self,
        tag: str | None = None,
        attrs: Mapping[str, str | None] | None = None,
    ) -> list[Element]:
        """Return descendants matching *tag* and every entry in *attrs*.

        An attribute value of ``None`` matches presence alone.
        """
        wanted_tag = tag.lower() if tag else None
        wanted = attrs or {}
        matches: list[Element] = []
        for element in self.iter():
            if wanted_tag is not None and element.tag != wanted_tag:
                continue
            if all(
                name in element.attrs and (value is None or element.attrs[name] == value)
                for name, value in wanted.items()
            ):
                matches.append(element)
        return matches

    def find(
        self,
        tag: str | None = None,
        attrs: Mapping[str, str | None] | None = None,
    ) -> Element | None:
        found = self.find_all(tag, attrs)
        return found[0] if found else None

    def contains(self, other: Element) -> bool:
        node = other.parent
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    # -- Serialization --

    def to_html(self) -> str:
        parts = [f"<{self.tag}"]
        for name, value in self.attrs.items():
            if value is None:
                parts.append(f" {name}")
            else:
                parts.append(f' {name}="{escape(value, quote=True)}"')
        parts.append(">")
        if self.tag in VOID_TAGS:
            return "".join(parts)
        parts.append(escape(self.text, quote=False))
        parts.extend(child.to_html() for child in self.children)
        parts.append(f"</{self.tag}>")
        return "".join(parts)


class Document:
    """A document with ``<html>``, ``<head>`` and ``<body>``."""

    __slots__ = ("body", "head", "html")

    def __init__(self) -> None:
        self.html = Element("html")
        self.head = self.html.append(Element("head"))
        self.body = self.html.append(Element("body"))

    def __repr__(self) -> str:
        return f"<Document {len(list(self.html.iter()))} elements>"

    def contains(self, element: Element) -> bool:
        return self.html.contains(element)

    def find_all(
        self,
        tag: str | None = None,
        attrs: Mapping[str, str | None] | None = None,
    ) -> list[Element]:
        return self.html.find_all(tag, attrs)

    def find(
        self,
        tag: str | None = None,
        attrs: Mapping[str, str | None] | None = None,
    ) -> Element | None:
        return self.html.find(tag, attrs)

    def ensure_container(self, tag: str) -> Element:
        """Return the first ``<tag>`` in the body, creating it if absent."""
        container = self.body.find(tag)
        if container is None:
            container = self.body.append(Element(tag))
        return container


class _FragmentBuilder(HTMLParser):
    """Builds an Element tree under a synthetic root.

    An element keeps its text in one ``text`` string, so text is joined
    no matter where it sat between the children. Mixed content does not
    round-trip in order: ``<p>a<b>x</b>c</p>`` renders back as
    ``<p>ac<b>x</b></p>``.
    """

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = Element("#fragment")
        self._stack: list[Element] = [self.root]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = self._stack[-1].append(Element(tag, dict(attrs)))
        if element.tag not in VOID_TAGS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._stack[-1].append(Element(tag, dict(attrs)))

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        # Close up to the nearest matching open element; stray end tags are ignored
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].tag == tag:
                del self._stack[index:]
                return

    def handle_data(self, data: str) -> None:
        current = self._stack[-1]
        if current is not self.root:
            current.text += data


def parse_fragment(html: str, *, source: str = "<string>") -> Element:
    """Parse HTML text into its first root element, detached.

    Raises ``ParseError`` when the text contains no element.
    """
    builder = _FragmentBuilder()
    builder.feed(html.strip())
    builder.close()

    if not builder.root.children:
        raise ParseError(path=source, detail="no root element in HTML fragment")
    element = builder.root.children[0]
    element.remove()
    return element
