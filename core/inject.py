"""Branding and SEO injection into proxied HTML pages."""

import html
import json

HEAD_CLOSE = "</head>"

_BLOCK_TEMPLATE = """
	<meta name="google-site-verification" content="{verification}" />
	<style>
		/* Hide the "More actions" button and the button after it */
		.notion-topbar [role="button"][tabindex="0"][aria-label],
		.notion-topbar [role="button"][tabindex="0"][style*="border: 1px solid"] {{
			display: none !important;
		}}
		/* Mobile top bar */
		.notion-topbar-mobile [role="button"][tabindex="0"][aria-label],
		.notion-topbar-mobile [role="button"][tabindex="0"][style*="border: 1px solid"] {{
			display: none !important;
		}}
		/* Upsell button, matched by its accent background */
		.notion-topbar [role="button"][style*="background: var(--c-bacAccPri)"],
		.notion-topbar-mobile [role="button"][style*="background: var(--c-bacAccPri)"] {{
			display: none !important;
		}}
	</style>
	<script>
		const PAGE_TITLE = {title};
		const PAGE_DESCRIPTION = {description};

		function ensureMeta(selector, attribute, value) {{
			if (!document.querySelector(selector) && document.head) {{
				const meta = document.createElement("meta");
				meta.setAttribute(attribute, value);
				meta.setAttribute("content", PAGE_DESCRIPTION);
				document.head.appendChild(meta);
			}}
		}}

		const observer = new MutationObserver(() => {{
			const titleElement = document.querySelector("title");
			if (titleElement && titleElement.textContent !== PAGE_TITLE) {{
				titleElement.textContent = PAGE_TITLE;
			}}

			[
				document.querySelector('meta[name="description"]'),
				document.querySelector('meta[property="og:description"]')
			].forEach(meta => {{
				if (meta && meta.getAttribute("content") !== PAGE_DESCRIPTION) {{
					meta.setAttribute("content", PAGE_DESCRIPTION);
				}}
			}});

			ensureMeta('meta[name="description"]', "name", "description");
			ensureMeta('meta[property="og:description"]', "property", "og:description");
		}});

		const options = {{ childList: true, subtree: true, characterData: true }};
		observer.observe(document.head, options);
		// Body too, for title elements added late by the page scripts
		observer.observe(document.body, options);
	</script>"""


def _js_string(value: str) -> str:
    """Render a Python string as a JS literal that is safe inside <script>."""
    return json.dumps(value).replace("</", "<\\/")


class HtmlInjector:
    """Insert the branding block right before the closing head tag."""

    def __init__(self, verification: str, title: str, description: str) -> None:
        self._block = _BLOCK_TEMPLATE.format(
            verification=html.escape(verification, quote=True),
            title=_js_string(title),
            description=_js_string(description),
        )

    @property
    def block(self) -> str:
        return self._block

    def inject(self, document: str) -> str:
        """Return the document with the block inserted, or unchanged if no </head>."""
        return document.replace(HEAD_CLOSE, self._block + HEAD_CLOSE, 1)

    def inject_bytes(self, body: bytes) -> bytes:
        """Byte-preserving variant of inject() for raw response bodies."""
        document = body.decode("utf-8", errors="surrogateescape")
        return self.inject(document).encode("utf-8", errors="surrogateescape")
