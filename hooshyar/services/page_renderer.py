"""
HTML page renderer for Hooshyar.

Renders the search page as a pure function of a SearchState.
"""

from typing import Optional

from jinja2 import Environment

from hooshyar.config import settings
from hooshyar.models.schemas import Audience, SearchState

# Reload interval of the page while a search is in flight
REFRESH_SECONDS = 2

AUDIENCE_LABELS = {
    Audience.GENERAL: "عموم مردم",
    Audience.PROFESSIONAL: "کادر درمان",
}

PAGE_CSS = """
    body {
        font-family: 'Vazirmatn', Tahoma, sans-serif;
        background: linear-gradient(135deg, #e0e7ff, #faf5ff, #ffffff);
        color: #1f2937;
        margin: 0;
    }
    header {
        background: linear-gradient(90deg, #4f46e5, #7e22ce);
        color: #fff;
        text-align: center;
        padding: 1rem;
    }
    header p { color: #c7d2fe; margin: 0.5rem 0 0; }
    main { max-width: 48rem; margin: 0 auto; padding: 2rem 1rem; }
    .panel, .card {
        background: rgba(255, 255, 255, 0.8);
        border-radius: 1.5rem;
        box-shadow: 0 10px 25px rgba(0, 0, 0, 0.08);
        padding: 1.5rem;
        margin-bottom: 1.5rem;
    }
    .audience-toggle { display: flex; gap: 0.5rem; justify-content: center; }
    .audience-toggle label {
        padding: 0.6rem 1.2rem;
        border-radius: 9999px;
        cursor: pointer;
    }
    .audience-toggle input:checked + span { font-weight: bold; color: #4f46e5; }
    textarea { width: 100%; font-size: 1.1rem; border-radius: 1rem; padding: 0.75rem; }
    button, .download {
        background: linear-gradient(90deg, #4f46e5, #9333ea);
        color: #fff;
        border: none;
        border-radius: 9999px;
        padding: 0.8rem 2rem;
        font-weight: bold;
        text-decoration: none;
    }
    button:disabled { background: #9ca3af; cursor: not-allowed; }
    .cancel { background: #ef4444; }
    .spinner { text-align: center; color: #4f46e5; }
    .error-banner {
        background: #fee2e2;
        border-right: 4px solid #ef4444;
        color: #991b1b;
        padding: 1rem;
        border-radius: 0.75rem;
        margin-bottom: 1.5rem;
    }
    .card h2 { color: #4338ca; margin-top: 0; }
    .welcome { text-align: center; }
"""

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="fa" dir="rtl">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    {% if state.is_loading %}<meta http-equiv="refresh" content="{{ refresh_seconds }}">{% endif %}
    <title>{{ app_name }}</title>
    <style>{{ css | safe }}</style>
</head>
<body>
    <header>
        <h1>هوش یار</h1>
        <p>من هوش یار هستم هر سوالی داری این پایین از من بپرس</p>
    </header>
    <main>
        <div class="panel">
            <form method="post" action="/">
                <fieldset class="audience-toggle">
                    <legend>سطح اطلاعات مورد نیاز:</legend>
                    {% for value, label in audiences %}
                    <label>
                        <input type="radio" name="audience" value="{{ value }}"{% if value == state.audience.value %} checked{% endif %}>
                        <span>{{ label }}</span>
                    </label>
                    {% endfor %}
                </fieldset>
                <label for="topic-search">موضوع سلامت مورد نظر خود را وارد کنید:</label>
                <textarea id="topic-search" name="topic" rows="3"
                    placeholder="مثلاً: دیابت، مراقبت از زخم بستر، اکسیژن تراپی">{{ state.query_text }}</textarea>
                <button type="submit"{% if state.is_loading %} disabled{% endif %}>
                    {% if state.is_loading %}در حال جستجو...{% else %}بپرس{% endif %}
                </button>
            </form>
            {% if state.is_loading %}
            <form method="post" action="/stop">
                <button type="submit" class="cancel" aria-label="توقف جستجو">توقف جستجو</button>
            </form>
            {% endif %}
        </div>

        {% if state.is_loading %}
        <div class="spinner" role="status">در حال دریافت اطلاعات...</div>
        {% endif %}

        {% if state.error_message %}
        <div class="error-banner" role="alert">
            <strong>خطا:</strong> {{ state.error_message }}
        </div>
        {% endif %}

        {% if state.result %}
        <section class="results">
            <article class="card intro-card">
                <h2>{{ state.result.topic_name }}</h2>
                <p>{{ state.result.introduction }}</p>
                <a class="download" href="/export" title="دانلود به صورت فایل Word">دانلود بصورت Word</a>
            </article>
            {% for section in state.result.sections %}
            <article class="card section-card">
                <h2>{{ section.title }}</h2>
                <ul>
                    {% for detail in section.details %}
                    <li>{{ detail }}</li>
                    {% endfor %}
                </ul>
            </article>
            {% endfor %}
        </section>
        {% endif %}

        {% if not state.is_loading and not state.result and not state.error_message %}
        <div class="panel welcome">
            <h2>به هوش یار خوش آمدید</h2>
            <p>دستیار سلامت هوشمند شما، آماده پاسخگویی به سوالاتتان است.</p>
        </div>
        {% endif %}
    </main>
</body>
</html>
"""


class PageRenderer:
    """Renders the search page from controller state."""

    def __init__(self):
        self._env = Environment(autoescape=True)
        self._template = self._env.from_string(PAGE_TEMPLATE)

    def render(self, state: SearchState) -> str:
        """
        Render the full page.

        Args:
            state: Snapshot of the session's search state

        Returns:
            HTML string
        """
        return self._template.render(
            app_name=settings.app_name,
            css=PAGE_CSS,
            refresh_seconds=REFRESH_SECONDS,
            state=state,
            audiences=[(audience.value, label) for audience, label in AUDIENCE_LABELS.items()],
        )


# Lazy-loaded singleton
_page_renderer: Optional[PageRenderer] = None


def get_page_renderer() -> PageRenderer:
    """Get or create page renderer singleton."""
    global _page_renderer
    if _page_renderer is None:
        _page_renderer = PageRenderer()
    return _page_renderer


def render_page(state: SearchState) -> str:
    """Render the search page for a state snapshot."""
    return get_page_renderer().render(state)
