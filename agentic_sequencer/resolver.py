"""
Target resolution for Agentic Sequencer.

Handlers never build DOM queries themselves. They ask a TargetResolver to
locate, scroll to and interact with elements, so the heuristics (what counts
as clickable, which input matches a field hint, which link is "the first
result") can be swapped or tested without the engine loop.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .page_view import PageView
from .task_schemas import (
    ClickResult,
    EnterResult,
    ExtractedItem,
    FindResult,
    ScrollResult,
    TypeResult,
    validate_extracted_items,
    validate_page_result,
)
from .utils import js_literal


class TargetResolver(ABC):
    """Locates and drives page elements on behalf of task handlers."""

    @abstractmethod
    async def flash_outline(self, page: PageView) -> None:
        """Briefly outline the page to show automation is acting on it."""

    @abstractmethod
    async def clear_find_highlight(self, page: PageView) -> None:
        """Remove highlight markers and selection left by a previous find."""

    @abstractmethod
    async def scroll_to_text(self, page: PageView, text: str) -> FindResult:
        """Mark and smooth-scroll to the first visible element containing text."""

    @abstractmethod
    async def click_selector(self, page: PageView, selector: str) -> ClickResult:
        """Click the element matching a CSS selector."""

    @abstractmethod
    async def click_text(self, page: PageView, text: str) -> ClickResult:
        """Click the first clickable element whose own text contains text."""

    @abstractmethod
    async def click_first_external_link(
        self,
        page: PageView,
        exclude_host: Optional[str] = None,
    ) -> ClickResult:
        """Click the first visible http(s) link not pointing at exclude_host."""

    @abstractmethod
    async def type_into_input(
        self,
        page: PageView,
        text: str,
        target_field: Optional[str] = None,
        near_text: Optional[str] = None,
    ) -> TypeResult:
        """Type text into the input resolved from the hints."""

    @abstractmethod
    async def press_enter(self, page: PageView) -> EnterResult:
        """Send Enter to the focused (or first) input and submit its form."""

    @abstractmethod
    async def scroll_by(self, page: PageView, amount: int) -> ScrollResult:
        """Animate a vertical scroll by amount pixels."""

    @abstractmethod
    async def extract_page_data(
        self,
        page: PageView,
        max_links: int,
        max_headings: int,
    ) -> list[ExtractedItem]:
        """Pull visible links and headings from the page."""


# Shared prelude for every async script: scaled randomized sleep
_PRELUDE = """
    const scale = {scale};
    const sleep = (lo, hi) => new Promise(resolve =>
        setTimeout(resolve, (lo + Math.random() * ((hi === undefined ? lo : hi) - lo)) * scale));
"""

_INPUT_SELECTOR = (
    'input:not([type="hidden"]):not([type="submit"]):not([type="button"]), textarea'
)


class ScriptTargetResolver(TargetResolver):
    """TargetResolver that injects JavaScript through the page view.

    Every value placed in a script is embedded as a JSON literal and every
    result is validated against its schema before it reaches a handler.
    """

    def __init__(self, human_delay_scale: float = 1.0):
        """Initialize the resolver.

        Args:
            human_delay_scale: Multiplier for in-page randomized delays
        """
        self.human_delay_scale = human_delay_scale

    def _script(self, body: str) -> str:
        """Wrap a script body in an async IIFE with the timing prelude."""
        prelude = _PRELUDE.replace("{scale}", js_literal(self.human_delay_scale))
        return f"(async function() {{{prelude}{body}\n}})()"

    async def flash_outline(self, page: PageView) -> None:
        await page.execute_javascript("""
            (function() {
                document.body.style.outline = '4px solid #3b82f6';
                document.body.style.outlineOffset = '-4px';
                setTimeout(() => { document.body.style.outline = ''; }, 2000);
            })();
        """)

    async def clear_find_highlight(self, page: PageView) -> None:
        await page.execute_javascript("""
            (function() {
                document.querySelectorAll('[data-find-highlight]').forEach(el => {
                    el.removeAttribute('data-find-highlight');
                    el.style.backgroundColor = '';
                    el.style.outline = '';
                });
                if (window.getSelection) {
                    window.getSelection().removeAllRanges();
                }
            })();
        """)

    async def scroll_to_text(self, page: PageView, text: str) -> FindResult:
        raw = await page.execute_javascript(self._script(f"""
    const searchText = {js_literal(text)}.toLowerCase();
    const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT, {{
        acceptNode(node) {{
            return node.textContent && node.textContent.toLowerCase().includes(searchText)
                ? NodeFilter.FILTER_ACCEPT
                : NodeFilter.FILTER_SKIP;
        }}
    }});

    let firstMatch = null;
    let node;
    while ((node = walker.nextNode())) {{
        const element = node.parentElement;
        if (element && element.offsetParent !== null) {{
            firstMatch = element;
            break;
        }}
    }}
    if (!firstMatch) return {{ found: false, scrolled: false }};

    firstMatch.setAttribute('data-find-highlight', 'true');
    const rect = firstMatch.getBoundingClientRect();
    const target = window.pageYOffset + rect.top - (window.innerHeight / 2);
    const startY = window.pageYOffset;
    const distance = target - startY;
    const duration = (800 + Math.random() * 400) * scale;
    const startTime = performance.now();
    const ease = t => t < 0.5 ? 2 * t * t : -1 + (4 - 2 * t) * t;

    function step(now) {{
        const progress = duration > 0 ? Math.min((now - startTime) / duration, 1) : 1;
        window.scrollTo(0, startY + distance * ease(progress));
        if (progress < 1) requestAnimationFrame(step);
    }}
    requestAnimationFrame(step);
    await new Promise(resolve => setTimeout(resolve, duration + 100 * scale));
    return {{ found: true, scrolled: true }};"""))
        return validate_page_result(FindResult, raw)

    async def click_selector(self, page: PageView, selector: str) -> ClickResult:
        raw = await page.execute_javascript(self._script(f"""
    const selector = {js_literal(selector)};
    const el = document.querySelector(selector);
    if (!el) throw new Error('Element not found: ' + selector);
    el.scrollIntoView({{ behavior: 'smooth', block: 'center' }});
    await sleep(400, 600);
    el.click();
    return {{
        success: true,
        element: el.tagName,
        text: (el.textContent || '').trim().substring(0, 50),
        url: el.href || null,
        selector: selector,
    }};"""))
        return validate_page_result(ClickResult, raw)

    async def click_text(self, page: PageView, text: str) -> ClickResult:
        raw = await page.execute_javascript(self._script(f"""
    const searchText = {js_literal(text)}.toLowerCase();
    const isClickable = el => el.tagName === 'A' || el.tagName === 'BUTTON' || !!el.onclick ||
        el.getAttribute('role') === 'button' || el.getAttribute('role') === 'link';

    // Elements whose own text (not just a child's) contains the match
    const matches = Array.from(document.querySelectorAll('body *')).filter(el => {{
        const text = (el.textContent || '').trim();
        const childText = Array.from(el.children).map(c => c.textContent || '').join('');
        return text.replace(childText, '').trim().toLowerCase().includes(searchText);
    }});

    const clickEl = async el => {{
        el.scrollIntoView({{ behavior: 'smooth', block: 'center' }});
        await sleep(400);
        el.click();
        return {{
            success: true,
            element: el.tagName,
            text: (el.textContent || '').substring(0, 50).trim(),
            url: el.href || null,
        }};
    }};

    for (const el of matches) {{
        if (isClickable(el) || window.getComputedStyle(el).cursor === 'pointer') {{
            return await clickEl(el);
        }}
        let parent = el.parentElement;
        for (let depth = 0; parent && depth < 5; depth++) {{
            if (isClickable(parent)) return await clickEl(parent);
            parent = parent.parentElement;
        }}
    }}
    if (matches.length > 0) return await clickEl(matches[0]);
    throw new Error('Element not found for clicking');"""))
        return validate_page_result(ClickResult, raw)

    async def click_first_external_link(
        self,
        page: PageView,
        exclude_host: Optional[str] = None,
    ) -> ClickResult:
        raw = await page.execute_javascript(self._script(f"""
    const excludeHost = {js_literal(exclude_host or '')};
    const links = Array.from(document.querySelectorAll('a')).filter(a => {{
        if (!a.href || !a.href.startsWith('http') || a.offsetParent === null) return false;
        if (!excludeHost) return true;
        const host = new URL(a.href).hostname;
        return host !== excludeHost && !host.endsWith('.' + excludeHost);
    }});
    if (links.length === 0) throw new Error('No clickable links found');
    const link = links[0];
    link.scrollIntoView({{ behavior: 'smooth', block: 'center' }});
    await sleep(400, 600);
    link.click();
    return {{
        success: true,
        element: 'A',
        text: (link.textContent || '').trim().substring(0, 50),
        url: link.href,
    }};"""))
        return validate_page_result(ClickResult, raw)

    async def type_into_input(
        self,
        page: PageView,
        text: str,
        target_field: Optional[str] = None,
        near_text: Optional[str] = None,
    ) -> TypeResult:
        raw = await page.execute_javascript(self._script(f"""
    const targetField = {js_literal(target_field or '')};
    const nearText = {js_literal(near_text or '')};
    const textToType = {js_literal(text)};
    const inputSelector = {js_literal(_INPUT_SELECTOR)};
    let input = null;

    // 1. Field hint: name/id, input type, then placeholder or label
    if (targetField) {{
        const hint = CSS.escape(targetField);
        input = document.querySelector(
            'input[name*="' + hint + '" i], input[id*="' + hint + '" i]');
        if (!input && targetField === 'password') {{
            input = document.querySelector('input[type="password"]');
        }}
        if (!input && targetField === 'email') {{
            input = document.querySelector('input[type="email"]');
        }}
        if (!input) {{
            input = Array.from(document.querySelectorAll(inputSelector)).find(inp => {{
                const placeholder = inp.getAttribute('placeholder') || '';
                const label = (inp.labels && inp.labels[0] && inp.labels[0].textContent) || '';
                return (placeholder + ' ' + label).toLowerCase().includes(targetField.toLowerCase());
            }});
        }}
    }}

    // 2. Nearest input around the text found by a previous find
    if (!input && nearText) {{
        const walker = document.createTreeWalker(document.body, NodeFilter.SHOW_TEXT);
        let node;
        while (!input && (node = walker.nextNode())) {{
            if (!node.textContent.includes(nearText)) continue;
            let el = node.parentElement;
            while (el && el !== document.body) {{
                const nearby = el.querySelector(inputSelector);
                if (nearby) {{
                    input = nearby;
                    break;
                }}
                el = el.parentElement;
            }}
        }}
    }}

    // 3. First visible input
    if (!input) {{
        input = Array.from(document.querySelectorAll(inputSelector))
            .find(inp => inp.offsetParent !== null) || null;
    }}
    if (!input) {{
        throw new Error('No input field found' + (targetField ? ' for ' + targetField : ''));
    }}

    input.scrollIntoView({{ behavior: 'smooth', block: 'center' }});
    await sleep(300, 500);
    input.click();
    await sleep(100, 200);
    input.focus();
    await sleep(50, 100);
    input.value = '';

    for (const ch of textToType) {{
        input.value += ch;
        input.dispatchEvent(new KeyboardEvent('keydown', {{ key: ch, bubbles: true }}));
        input.dispatchEvent(new KeyboardEvent('keypress', {{ key: ch, bubbles: true }}));
        input.dispatchEvent(new Event('input', {{ bubbles: true }}));
        input.dispatchEvent(new KeyboardEvent('keyup', {{ key: ch, bubbles: true }}));
        await sleep(50, 150);
    }}
    input.dispatchEvent(new Event('change', {{ bubbles: true }}));
    await sleep(100, 200);

    return {{
        success: true,
        inputType: input.tagName,
        inputName: input.name || input.id || input.type || 'unknown',
    }};"""))
        return validate_page_result(TypeResult, raw)

    async def press_enter(self, page: PageView) -> EnterResult:
        raw = await page.execute_javascript(self._script(f"""
    let target = document.activeElement;
    if (!target || target === document.body) {{
        target = document.querySelector('input:focus, textarea:focus') ||
                 document.querySelector('input:not([type="hidden"]), textarea');
    }}
    if (!target) throw new Error('No target element for Enter key');

    const init = {{ key: 'Enter', code: 'Enter', keyCode: 13, which: 13, bubbles: true }};
    await sleep(50, 150);
    target.dispatchEvent(new KeyboardEvent('keydown', init));
    await sleep(20, 50);
    target.dispatchEvent(new KeyboardEvent('keypress', init));
    await sleep(20, 50);
    target.dispatchEvent(new KeyboardEvent('keyup', init));

    const form = target.closest ? target.closest('form') : null;
    if (form) {{
        await sleep(50, 100);
        form.dispatchEvent(new Event('submit', {{ bubbles: true, cancelable: true }}));
    }}
    return {{ success: true, element: target.tagName }};"""))
        return validate_page_result(EnterResult, raw)

    async def scroll_by(self, page: PageView, amount: int) -> ScrollResult:
        raw = await page.execute_javascript(self._script(f"""
    const distance = {js_literal(int(amount))};
    const duration = (800 + Math.random() * 400) * scale;
    const startY = window.pageYOffset;
    const startTime = performance.now();
    const ease = t => t < 0.5 ? 4 * t * t * t : 1 - Math.pow(-2 * t + 2, 3) / 2;

    function step(now) {{
        const progress = duration > 0 ? Math.min((now - startTime) / duration, 1) : 1;
        window.scrollTo(0, startY + distance * ease(progress));
        if (progress < 1) requestAnimationFrame(step);
    }}
    requestAnimationFrame(step);
    await new Promise(resolve => setTimeout(resolve, duration + 50 * scale));
    return {{ scrolled: distance, finalY: window.pageYOffset }};"""))
        return validate_page_result(ScrollResult, raw)

    async def extract_page_data(
        self,
        page: PageView,
        max_links: int,
        max_headings: int,
    ) -> list[ExtractedItem]:
        raw = await page.execute_javascript(f"""
            (function() {{
                const results = [];
                Array.from(document.querySelectorAll('a'))
                    .filter(a => a.href && a.textContent.trim() && a.offsetParent !== null)
                    .slice(0, {js_literal(int(max_links))})
                    .forEach(link => results.push({{
                        title: link.textContent.trim(),
                        url: link.href,
                        type: 'link',
                    }}));
                Array.from(document.querySelectorAll('h1, h2, h3'))
                    .slice(0, {js_literal(int(max_headings))})
                    .forEach(h => results.push({{
                        title: h.textContent.trim(),
                        type: 'heading',
                    }}));
                return results;
            }})()
        """)
        return validate_extracted_items(raw)
