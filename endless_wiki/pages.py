"""HTML pages: the search home page and the streaming article shell."""

import html
from string import Template

_STYLE = """
    <style>
        :root {
            --bg-primary: #0a0a0f;
            --glass-bg: rgba(255, 255, 255, 0.03);
            --glass-border: rgba(255, 255, 255, 0.08);
            --text-primary: #ffffff;
            --text-secondary: rgba(255, 255, 255, 0.6);
            --text-tertiary: rgba(255, 255, 255, 0.4);
            --accent-blue: #3b82f6;
            --accent-purple: #8b5cf6;
            --accent-green: #10b981;
            --accent-orange: #f59e0b;
        }

        * { margin: 0; padding: 0; box-sizing: border-box; }

        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
            background: var(--bg-primary);
            color: var(--text-primary);
            min-height: 100vh;
            line-height: 1.6;
        }

        .container { max-width: 860px; margin: 0 auto; padding: 0 24px 80px; }

        nav { padding: 24px 0; display: flex; justify-content: space-between; align-items: center; }

        .logo {
            font-size: 1.25rem; font-weight: 700; text-decoration: none;
            background: linear-gradient(135deg, #fff 0%, #a8edea 50%, #fed6e3 100%);
            -webkit-background-clip: text; -webkit-text-fill-color: transparent;
            background-clip: text;
        }

        .card {
            background: var(--glass-bg);
            border: 1px solid var(--glass-border);
            border-radius: 20px; padding: 32px;
            margin-bottom: 20px;
        }

        .hero { padding: 56px 0 40px; text-align: center; }
        .hero-title { font-size: clamp(2.2rem, 6vw, 3.8rem); font-weight: 800; letter-spacing: -1.5px; line-height: 1.1; margin-bottom: 14px; }
        .hero-subtitle { font-size: 1rem; color: var(--text-secondary); margin-bottom: 28px; }

        form { display: flex; gap: 12px; }

        input[type="text"] {
            flex: 1;
            background: rgba(0,0,0,0.3);
            border: 1px solid var(--glass-border);
            border-radius: 12px;
            color: var(--text-primary);
            font-size: 0.95rem; padding: 12px 16px; outline: none;
        }

        .btn {
            padding: 12px 24px; border-radius: 12px; border: none; cursor: pointer;
            font-size: 0.9rem; font-weight: 600; color: white;
            background: linear-gradient(135deg, var(--accent-blue), var(--accent-purple));
        }

        .suggestions { margin-top: 20px; display: flex; gap: 10px; flex-wrap: wrap; justify-content: center; }
        .suggestions a, article a { color: #a8edea; }

        .status { display: flex; gap: 10px; align-items: center; font-size: 0.82rem; color: var(--text-tertiary); margin-bottom: 16px; }
        .status-dot { width: 8px; height: 8px; border-radius: 50%; background: var(--accent-orange); animation: pulse 0.8s ease-in-out infinite; }
        .status-dot.done { background: var(--accent-green); animation: none; }
        .status-dot.error { background: #ef4444; animation: none; }
        @keyframes pulse { 0%, 100% { opacity: 1; } 50% { opacity: 0.4; } }

        .error-banner {
            display: none; padding: 12px 16px; margin-bottom: 16px;
            background: rgba(239,68,68,0.08); border: 1px solid rgba(239,68,68,0.2);
            border-radius: 10px; font-size: 0.82rem; color: rgba(252,165,165,0.9);
        }

        article h1, article h2, article h3 { margin: 1.2em 0 0.4em; }
        article p, article ul, article ol, article table { margin-bottom: 0.8em; }
        article ul, article ol { padding-left: 1.4em; }

        @media (max-width: 640px) {
            .card { padding: 20px; }
            .hero { padding: 36px 0 28px; }
            form { flex-direction: column; }
        }
    </style>
"""

HOME_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Endless Wiki</title>
$style
</head>
<body>
    <div class="container">
        <nav><a href="/" class="logo">Endless Wiki</a></nav>

        <div class="hero">
            <h1 class="hero-title">Endless Wiki</h1>
            <p class="hero-subtitle">Every article is written the moment you ask for it.</p>
        </div>

        <div class="card">
            <form id="search-form">
                <input type="text" id="topic" placeholder="Ancient Rome" autofocus>
                <button class="btn" type="submit">Read</button>
            </form>
            <div class="suggestions">
                <a href="/wiki/Ancient%20Rome">Ancient Rome</a>
                <a href="/wiki/Quantum%20Mechanics">Quantum Mechanics</a>
                <a href="/wiki/Jazz">Jazz</a>
                <a href="/wiki/Photosynthesis">Photosynthesis</a>
            </div>
        </div>
    </div>

    <script>
        document.getElementById('search-form').addEventListener('submit', e => {
            e.preventDefault();
            const topic = document.getElementById('topic').value.trim();
            if (topic) window.location.href = '/wiki/' + encodeURIComponent(topic);
        });
    </script>
</body>
</html>
""")

ARTICLE_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>$title - Endless Wiki</title>
$style
</head>
<body>
    <div class="container">
        <nav><a href="/" class="logo">Endless Wiki</a></nav>

        <div class="card">
            <h1>$title</h1>
            <div class="status">
                <span class="status-dot" id="status-dot"></span>
                <span id="status-label">Generating&hellip;</span>
            </div>
            <div class="error-banner" id="error-banner">Failed to generate article &mdash; try again in a moment.</div>
            <article id="article" data-topic="$title"></article>
        </div>
    </div>

    <script>
        const article = document.getElementById('article');
        const source = new EventSource('/stream/' + encodeURIComponent(article.dataset.topic));

        function setStatus(state, msg) {
            document.getElementById('status-dot').className = 'status-dot ' + state;
            document.getElementById('status-label').textContent = msg;
        }

        // Each snapshot replaces everything rendered so far
        source.addEventListener('content', e => {
            article.innerHTML = JSON.parse(e.data).html;
        });

        source.addEventListener('error', e => {
            if (e.data) {
                document.getElementById('error-banner').style.display = 'block';
                setStatus('error', 'Error');
            } else {
                // Transport failure: do not let the browser reconnect into a new generation
                source.close();
                setStatus('error', 'Connection lost');
            }
        });

        source.addEventListener('complete', () => {
            source.close();
            if (document.getElementById('error-banner').style.display !== 'block') {
                setStatus('done', 'Complete');
            }
        });
    </script>
</body>
</html>
""")


def render_home_page() -> str:
    return HOME_TEMPLATE.substitute(style=_STYLE)


def render_article_page(topic: str) -> str:
    """Render the article shell; the body is filled in by the event stream."""
    return ARTICLE_TEMPLATE.substitute(style=_STYLE, title=html.escape(topic))
