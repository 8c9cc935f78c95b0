"""Server-rendered HTML for the landing and auth error pages."""
from html import escape
from typing import List

from saaskit.models.catalog import Product

_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif;
            margin: 0;
            color: #0f172a;
        }
        header {
            display: flex;
            align-items: center;
            justify-content: space-between;
            padding: 0 24px;
            height: 64px;
            border-bottom: 1px solid #e2e8f0;
        }
        main { padding: 48px 24px; }
        .grid {
            display: grid;
            gap: 32px;
            grid-template-columns: repeat(auto-fill, minmax(260px, 1fr));
        }
        .card {
            border: 1px solid #e2e8f0;
            border-radius: 12px;
            padding: 24px;
        }
        .price { font-size: 28px; font-weight: 700; }
        .muted { color: #64748b; }
"""


def _product_card(product: Product) -> str:
    features = "".join(f"<li>{escape(f)}</li>" for f in product.features)
    features_html = f"<ul>{features}</ul>" if features else ""
    return (
        f'<div class="card" id="product-{escape(product.id)}">'
        f"<h3>{escape(product.name)}</h3>"
        f'<p class="muted">{escape(product.description or "")}</p>'
        f'<p class="price">{escape(product.display_price)}</p>'
        f"{features_html}"
        "</div>"
    )


def render_landing_page(site_name: str, products: List[Product]) -> str:
    cards = "\n".join(_product_card(p) for p in products)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(site_name)}</title>
    <style>{_STYLE}</style>
</head>
<body>
    <header>
        <strong>{escape(site_name)}</strong>
        <nav><a href="#pricing">Pricing</a> <a href="/login">Get Started</a></nav>
    </header>
    <main>
        <section id="pricing">
            <h2>Plans</h2>
            <div class="grid">
{cards}
            </div>
        </section>
    </main>
</body>
</html>
"""


def render_auth_error_page(site_name: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Sign-in Failed - {escape(site_name)}</title>
    <style>{_STYLE}</style>
</head>
<body>
    <main>
        <div class="card">
            <h1>Sign-in failed</h1>
            <p>We could not complete your sign-in. The link may have expired or already been used.</p>
            <p><a href="/login">Try signing in again</a></p>
        </div>
    </main>
</body>
</html>
"""
