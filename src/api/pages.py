"""
Server-rendered pages for the one-click confirmation link.

The link opens in a mail client's browser, so the result is a minimal
HTML page rather than JSON.
"""

from html import escape

LOGO_URL = (
    "https://raw.githubusercontent.com/EdgeApp/edge-brand-guide/refs/heads/master/"
    "Logo/Primary/Edge_Primary_Logo_MintWhite.png"
)

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Edge Rewards - {title}</title>
  <style>
    * {{ margin: 0; padding: 0; box-sizing: border-box; font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif; }}
    body {{ display: flex; flex-direction: column; min-height: 100vh; background: #f5f7fa; }}
    .header {{ background-color: #0c2550; padding: 1.5rem; display: flex; justify-content: center; }}
    .header img {{ height: 45px; }}
    .container {{ flex: 1; display: flex; flex-direction: column; align-items: center; justify-content: center; text-align: center; max-width: 500px; margin: 0 auto; padding: 40px 20px; }}
    .icon {{ font-size: 64px; margin-bottom: 20px; }}
    h1 {{ color: {color}; margin-bottom: 16px; font-size: 24px; }}
    p {{ color: #333; font-size: 16px; line-height: 1.6; }}
  </style>
</head>
<body>
  <div class="header"><img src="{logo}" alt="Edge" /></div>
  <div class="container">
    <div class="icon">{icon}</div>
    <h1>{heading}</h1>
    <p>{message}</p>
  </div>
</body>
</html>"""


def render_thank_you_page(message: str) -> str:
    return _PAGE.format(
        title="Verified",
        color="#28a745",
        logo=LOGO_URL,
        icon="&#x2705;",
        heading="Thank You!",
        message=escape(message),
    )


def render_error_page(message: str) -> str:
    return _PAGE.format(
        title="Error",
        color="#dc3545",
        logo=LOGO_URL,
        icon="&#x26A0;&#xFE0F;",
        heading="Error",
        message=escape(message),
    )
