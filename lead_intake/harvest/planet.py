"""Lead inbox harvester for the Planet agent CRM.

Prerequisites
-------------
* Requires :mod:`playwright` with Chromium installed (``playwright install``).
* Credentials come from :class:`~lead_intake.config.HarvestSettings`.
* The harvester only collects raw material (tokens and policy text).  All
  normalization, deduplication and classification happens in the pipeline.
"""
from __future__ import annotations

import contextlib
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from ..config import HarvestSettings
from ..events import EventBus
from ..models import LeadCapture, RawToken
from ..phones import PHONE_TOKEN_RE, find_labeled_tokens, find_phone_tokens
from ..policies import split_policy_blocks
from .base import BrowserHarvester, BrowserHarvesterConfig, HarvestError

LOGGER = logging.getLogger(__name__)

CLICK_TO_CALL_LABEL = "ClickToCall"

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

_VISIBLE_TOKENS_JS = """
(reSrc) => {
    const re = new RegExp(reSrc, 'gi');
    const tokens = new Set();
    for (const el of document.body.querySelectorAll('*')) {
        if (!el.offsetParent && getComputedStyle(el).position !== 'fixed') continue;
        const text = (el.textContent || '').trim();
        let m;
        re.lastIndex = 0;
        while ((m = re.exec(text))) tokens.add(m[0]);
        const href = el.getAttribute('href') || '';
        if (/^tel:/i.test(href)) tokens.add(href);
        const onclick = el.getAttribute('onclick') || '';
        if (/\\d{7,}/.test(onclick)) tokens.add(onclick);
        const dataPhone = (el.dataset && el.dataset.phone) || '';
        if (/\\d{7,}/.test(dataPhone)) tokens.add(dataPhone);
    }
    return Array.from(tokens);
}
"""

_HEADER_NAME_JS = """
() => {
    const back = Array.from(document.querySelectorAll('a,button'))
        .find(el => /(^|\\b)back\\b/i.test(el.textContent || ''));
    const zoneTop = back ? back.getBoundingClientRect().bottom : 0;
    const zoneBottom = zoneTop + 220;
    const zoneRight = window.innerWidth * 0.55;
    const bad = /^(BACK|DETAIL|CALL|APPT\\.?|COMMENTS|RESOLVE|VIEWING\\s+\\d+\\s*\\/\\s*\\d+)$/i;
    const found = [];
    document.querySelectorAll('body *').forEach(el => {
        const rect = el.getBoundingClientRect();
        if (rect.top < zoneTop || rect.top > zoneBottom || rect.left > zoneRight) return;
        const text = (el.textContent || '').trim();
        if (!text || bad.test(text) || /\\d{3,}/.test(text)) return;
        if (/[a-z]/.test(text) || !/[A-Z]/.test(text)) return;
        found.push({ text, y: rect.top, x: rect.left });
    });
    found.sort((a, b) => a.y - b.y || a.x - b.x);
    return found.length ? found[0].text : null;
}
"""

_LABEL_PAIRS_JS = """
() => {
    const out = [];
    const labelRe = /^(?:Ph|Phone|Sec(?:ond(?:ary)?)?\\s*Ph|Second(?:ary)?\\s*Phone|Cell|Home|Work|Fax)\\s*:?$/i;
    document.querySelectorAll('table tr').forEach(tr => {
        const cells = Array.from(tr.children);
        for (let i = 0; i < cells.length - 1; i++) {
            const label = (cells[i].textContent || '').trim();
            if (!labelRe.test(label)) continue;
            const value = cells[i + 1];
            const strings = [];
            const text = (value.textContent || '').trim();
            if (/\\d{7,}/.test(text.replace(/\\D/g, ''))) strings.push(text);
            value.querySelectorAll('a, button, span').forEach(el => {
                const href = el.getAttribute('href') || '';
                if (href.startsWith('tel:')) strings.push(href);
                const onclick = el.getAttribute('onclick') || '';
                if (/\\d{7,}/.test(onclick)) strings.push(onclick);
                const dataPhone = (el.dataset && el.dataset.phone) || '';
                if (/\\d{7,}/.test(dataPhone)) strings.push(dataPhone);
            });
            if (strings.length) out.push({ label, strings });
        }
    });
    return out;
}
"""


def diff_tokens(before: Iterable[str], after: Iterable[str]) -> List[str]:
    """Return tokens present in ``after`` but not in ``before``, keeping order."""

    seen = set(before)
    revealed: List[str] = []
    for token in after:
        if token in seen or token in revealed:
            continue
        revealed.append(token)
    return revealed


def label_pairs_to_tokens(pairs: Iterable[Dict[str, Any]]) -> List[Tuple[str, str]]:
    """Tokenize the ``{label, strings}`` records read from label/value table cells."""

    tokens: List[Tuple[str, str]] = []
    for pair in pairs:
        label = str(pair.get("label") or "").rstrip(":").strip()
        for text in pair.get("strings") or []:
            found = find_phone_tokens(text)
            if not found and str(text).lower().startswith("tel:"):
                found = [str(text)]
            for token in found:
                if (token, label) not in tokens:
                    tokens.append((token, label))
    return tokens


class PlanetHarvester(BrowserHarvester):
    """Walk the lead inbox and capture numbers and policy text for each lead.

    Parameters
    ----------
    settings:
        Credentials, base URL and the lead limit for the run.
    config:
        Optional :class:`BrowserHarvesterConfig` controlling browser behaviour.
    bus, job_id:
        When a bus is supplied, ``login``, ``lead`` and ``harvested`` events are
        published for ``job_id``.
    """

    name = "planet"
    LOGIN_PATH = "/Account/Login"
    INBOX_PATH = "/Lead/Inbox"
    DETAIL_ANCHOR = "/Lead/InboxDetail?LeadId="
    END_OF_INBOX_TEXT = "Error Occured"

    def __init__(
        self,
        settings: HarvestSettings,
        config: Optional[BrowserHarvesterConfig | Dict[str, Any]] = None,
        *,
        bus: Optional[EventBus] = None,
        job_id: str = "harvest",
    ) -> None:
        if isinstance(config, dict):
            resolved_config = BrowserHarvesterConfig(**config)
        else:
            resolved_config = config or BrowserHarvesterConfig()
        super().__init__(config=resolved_config)
        self.settings = settings
        self._bus = bus
        self._job_id = job_id

    def harvest(self) -> List[LeadCapture]:
        """Log in, open the first lead and capture up to ``max_leads`` leads."""

        captures: List[LeadCapture] = []
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(
                headless=self.config.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"],
            )
            try:
                context = browser.new_context(
                    viewport={"width": 1360, "height": 900},
                    user_agent=_USER_AGENT,
                    locale="en-US",
                )
                page = context.new_page()
                page.set_default_navigation_timeout(self.config.navigation_timeout * 1000)

                self._login(page)
                self._publish("login", url=page.url)
                page.goto(self._open_inbox(page), wait_until="domcontentloaded")
                self._apply_throttle()

                while len(captures) < self.settings.max_leads:
                    capture = self.capture_lead(page)
                    captures.append(capture)
                    self._publish("lead", index=len(captures), name=capture.primary_name)
                    LOGGER.info("Captured lead %s (%s)", len(captures), capture.display_name())

                    if len(captures) >= self.settings.max_leads:
                        break
                    if not self._go_to_next_lead(page):
                        LOGGER.info("Reached the end of the lead inbox")
                        break
                    self._apply_throttle()
            except PlaywrightError as exc:
                raise HarvestError(f"Harvest stopped after {len(captures)} leads: {exc}") from exc
            finally:
                with contextlib.suppress(PlaywrightError):
                    browser.close()

        self._publish("harvested", processed=len(captures))
        return captures

    def capture_lead(self, page) -> LeadCapture:
        """Capture the lead currently open in ``page``."""

        name = self._read_header_name(page)
        primary_tokens: List[RawToken] = [
            (token, CLICK_TO_CALL_LABEL) for token in self._harvest_click_to_call(page)
        ]

        self._expand_policies(page)
        page_text = page.evaluate("() => document.body.innerText || ''") or ""
        blocks = split_policy_blocks(page_text)

        extra_tokens: List[RawToken] = []
        for block in blocks:
            for pair in find_labeled_tokens(block):
                if pair not in extra_tokens:
                    extra_tokens.append(pair)
        for pair in label_pairs_to_tokens(page.evaluate(_LABEL_PAIRS_JS) or []):
            if pair not in extra_tokens:
                extra_tokens.append(pair)

        return LeadCapture(
            primary_name=name or "",
            primary_tokens=primary_tokens,
            extra_tokens=extra_tokens,
            policy_blocks=blocks,
            metadata={"url": page.url},
        )

    # ------------------------------------------------------------------
    # Navigation
    def _login(self, page) -> None:
        page.goto(self.settings.base_url + self.LOGIN_PATH, wait_until="load")

        user_input = (
            self._first_visible(page.locator('input[type="text"]'))
            or self._first_visible(page.locator('input[type="email"]'))
            or self._first_visible(page.locator("form input"))
        )
        pass_input = self._first_visible(page.locator('input[type="password"]'))
        if user_input is None:
            raise HarvestError("Login username input not found")
        if pass_input is None:
            raise HarvestError("Login password input not found")

        user_input.fill(self.settings.username)
        pass_input.fill(self.settings.password)

        submit = (
            self._first_visible(page.get_by_role("button", name="Login", exact=False))
            or self._first_visible(page.locator('button[type="submit"], input[type="submit"]'))
            or self._first_visible(page.locator("button"))
        )
        if submit is None:
            raise HarvestError("Login submit button not found")

        submit.click()
        with contextlib.suppress(PlaywrightTimeoutError):
            page.wait_for_load_state("networkidle", timeout=45000)
        if self.LOGIN_PATH.lower() in page.url.lower() and self._first_visible(
            page.locator('input[type="password"]')
        ):
            raise HarvestError("Login failed: still on the login page")

    def _open_inbox(self, page) -> str:
        page.goto(self.settings.base_url + self.INBOX_PATH, wait_until="domcontentloaded")
        selector = f'a[href*="{self.DETAIL_ANCHOR}"]'
        try:
            page.wait_for_selector(selector, timeout=self.config.selector_timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise HarvestError("No leads found in inbox") from exc
        href = page.locator(selector).first.get_attribute("href")
        if not href:
            raise HarvestError("First inbox lead has no link")
        return urljoin(self.settings.base_url + "/", href)

    def _go_to_next_lead(self, page) -> bool:
        next_control = (
            self._first_visible(page.locator('a[href*="/Lead/MoveNext"]'))
            or self._first_visible(page.get_by_role("link", name="Next", exact=False))
            or self._first_visible(page.locator('button[onclick*="MoveNext"]'))
        )
        if next_control is None:
            return False

        next_control.click()
        with contextlib.suppress(PlaywrightTimeoutError):
            page.wait_for_load_state("domcontentloaded", timeout=15000)

        if "/lead/movenext" in page.url.lower():
            end_marker = page.locator(f"text={self.END_OF_INBOX_TEXT}").first
            with contextlib.suppress(PlaywrightError):
                if end_marker.is_visible():
                    return False
        return True

    # ------------------------------------------------------------------
    # Extraction
    def _read_header_name(self, page) -> Optional[str]:
        with contextlib.suppress(PlaywrightError):
            return page.evaluate(_HEADER_NAME_JS)
        return None

    def _visible_tokens(self, page) -> List[str]:
        return list(page.evaluate(_VISIBLE_TOKENS_JS, PHONE_TOKEN_RE.pattern) or [])

    def _harvest_click_to_call(self, page) -> List[str]:
        """Click *Call* and return the tokens it revealed once the set stops changing."""

        call_button = (
            self._first_visible(page.get_by_role("button", name="Call", exact=True))
            or self._first_visible(page.locator('button:has-text("Call")'))
            or self._first_visible(page.locator('a:has-text("Call")'))
        )
        if call_button is None:
            return []

        before = self._visible_tokens(page)
        with contextlib.suppress(PlaywrightError):
            call_button.click()

        interval_ms = max(self.config.click_settle_seconds, 0.05) * 1000
        deadline = time.monotonic() + self.config.settle_timeout
        previous: Optional[List[str]] = None
        revealed: List[str] = []
        while True:
            page.wait_for_timeout(interval_ms)
            revealed = diff_tokens(before, self._visible_tokens(page))
            if revealed and revealed == previous:
                break
            if time.monotonic() >= deadline:
                break
            previous = revealed
        return revealed

    def _expand_policies(self, page) -> None:
        selector = 'button:has-text("More"), a:has-text("More")'
        for _ in range(self.config.max_policy_expansions):
            more = self._first_visible(page.locator(selector))
            if more is None:
                break
            with contextlib.suppress(PlaywrightError):
                more.click()
            page.wait_for_timeout(self.config.click_settle_seconds * 1000)

    @staticmethod
    def _first_visible(locator):
        try:
            count = locator.count()
            for index in range(count):
                element = locator.nth(index)
                if element.is_visible():
                    return element
        except PlaywrightError:
            return None
        return None

    def _publish(self, type: str, **payload: Any) -> None:
        if self._bus is not None:
            self._bus.publish(self._job_id, type, **payload)
