"""
FraudLens Streamlit UI
A demo client for the website scan API.
"""

import base64
from io import BytesIO
from typing import Any, Dict, List

import requests
import streamlit as st
from PIL import Image, ImageDraw


st.set_page_config(
    page_title="FraudLens Demo",
    page_icon="🛡️",
    layout="wide",
)


# ---------- Helpers ----------


def call_scan(base_url: str, url: str) -> requests.Response:
    """Call FraudLens /api/scan with a JSON body."""
    endpoint = base_url.rstrip("/") + "/api/scan"
    return requests.post(endpoint, json={"url": url}, timeout=180)


def draw_markers(data_uri: str, markers: List[Dict[str, Any]]) -> Image.Image:
    """Decode the screenshot and outline each marker (percent coordinates)."""
    raw = base64.b64decode(data_uri.split(",", 1)[1])
    image = Image.open(BytesIO(raw)).convert("RGB")
    draw = ImageDraw.Draw(image)
    w, h = image.size
    for m in markers:
        x0 = w * m["left"] / 100
        y0 = h * m["top"] / 100
        x1 = x0 + w * m["width"] / 100
        y1 = y0 + h * m["height"] / 100
        draw.rectangle([x0, y0, x1, y1], outline=(221, 51, 51), width=3)
        draw.text((x0 + 4, y0 + 2), m.get("label", ""), fill=(221, 51, 51))
    return image


def render_result(result: Dict[str, Any]):
    """Render a scan result."""
    st.subheader("🔎 Result")

    analysis = result.get("analysis") or {}
    level = analysis.get("riskLevel", "N/A")
    level_icons = {
        "Safe": "🟢",
        "Low": "🟢",
        "Medium": "🟡",
        "High": "🟠",
        "Critical": "🔴",
    }

    if analysis.get("isSimulated"):
        st.warning(
            "The risk analysis service was unavailable "
            f"({analysis.get('degradationReason')}). The results below are simulated."
        )

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Risk Level", f"{level_icons.get(level, '⚪')} {level}")
    with col2:
        st.metric("Risk Score", f"{analysis.get('riskScore', 0):.0f}/100")
    with col3:
        st.metric("Scanned", result.get("scanTime", "")[:19].replace("T", " "))

    st.divider()
    col_left, col_right = st.columns(2)

    with col_left:
        fraud_types = analysis.get("fraudTypes") or []
        if fraud_types:
            st.markdown("**🏷️ Fraud types**")
            st.write(", ".join(fraud_types))

        indicators = analysis.get("indicators") or []
        if indicators:
            st.markdown("**🚩 Indicators**")
            for ind in indicators[:8]:
                st.write(f"- {ind}")
            if len(indicators) > 8:
                st.write(f"... and {len(indicators) - 8} more")

        advice = analysis.get("safetyAdvice") or []
        if advice:
            st.markdown("**💡 Safety advice**")
            for rec in advice:
                st.markdown(f"- {rec}")

    with col_right:
        screenshot = result.get("screenshot")
        if screenshot:
            st.image(
                draw_markers(screenshot, result.get("markers") or []),
                caption=result.get("url"),
                use_container_width=True,
            )
        else:
            st.info("No screenshot available.")

    with st.expander("🔧 Raw JSON response"):
        raw = dict(result)
        if raw.get("screenshot"):
            raw["screenshot"] = raw["screenshot"][:64] + "..."
        st.json(raw)


# ---------- Sidebar config ----------


st.sidebar.title("⚙️ Settings")

base_url = st.sidebar.text_input(
    "Backend URL",
    value="http://127.0.0.1:3000",
    help="FraudLens server base URL.",
)

st.sidebar.markdown("---")

if st.sidebar.button("🔌 Check Connection"):
    try:
        resp = requests.get(f"{base_url.rstrip('/')}/health", timeout=5)
        if resp.status_code == 200:
            st.sidebar.success("✅ Backend is online!")
        else:
            st.sidebar.error(f"❌ Backend returned {resp.status_code}")
    except requests.RequestException as e:
        st.sidebar.error(f"❌ Cannot connect: {e}")


# ---------- Main UI ----------


st.title("🛡️ FraudLens")
st.markdown("**Website fraud-risk scanner**")
st.markdown("---")

url_val = st.text_input(
    "Website URL",
    placeholder="https://secure-login-paypal.com/account/verify",
)

if st.button("🔍 Scan Website", type="primary"):
    if not url_val.strip():
        st.warning("Please enter a URL.")
    else:
        with st.spinner("Rendering and analyzing the page..."):
            try:
                resp = call_scan(base_url, url_val)
                data = resp.json()
                if resp.ok:
                    render_result(data)
                else:
                    st.error(f"{resp.status_code}: {data.get('message')} (request {data.get('requestId')})")
                    if data.get("details"):
                        st.caption(data["details"])
            except requests.RequestException as e:
                st.error(f"Error calling backend: {e}")


st.markdown("---")
st.markdown(
    "<div style='text-align: center; color: gray;'>"
    "FraudLens v0.1.0 • Website Fraud-Risk Scanner"
    "</div>",
    unsafe_allow_html=True,
)
