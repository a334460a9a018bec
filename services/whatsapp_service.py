# services/whatsapp_service.py
import logging
import httpx
from config import WHATSAPP_TOKEN, WHATSAPP_API_URL, TEMPLATE_LANGUAGE

logger = logging.getLogger("services.whatsapp_service")

HEADERS = {"Authorization": f"Bearer {WHATSAPP_TOKEN}"} if WHATSAPP_TOKEN else {}


def _send(payload: dict):
    if not WHATSAPP_API_URL or not WHATSAPP_TOKEN:
        logger.warning("WHATSAPP_API_URL or WHATSAPP_TOKEN not configured. Skipping send.")
        return {"error": "no_whatsapp_config"}
    payload = payload.copy()
    logger.info("WHATSAPP REQUEST: %s", payload)
    try:
        with httpx.Client(timeout=10) as client:
            resp = client.post(WHATSAPP_API_URL, headers=HEADERS, json=payload)
    except httpx.HTTPError as e:
        logger.error("WHATSAPP TRANSPORT ERROR: %s", e)
        return {"error": "transport_error", "detail": str(e)}
    try:
        j = resp.json()
    except ValueError:
        j = {"status": resp.status_code, "text": resp.text}
    if resp.status_code >= 400:
        logger.error("WHATSAPP ERROR %s: %s", resp.status_code, j)
        return {"error": "api_error", "status": resp.status_code, "detail": j}
    logger.info("WHATSAPP RESPONSE: %s", j)
    return j


def send_text(wa_id: str, body: str):
    payload = {"messaging_product": "whatsapp", "to": wa_id, "type": "text", "text": {"body": body}}
    return _send(payload)


def send_template(wa_id: str, template_name: str, language: str = TEMPLATE_LANGUAGE, components: list = None):
    payload = {
        "messaging_product": "whatsapp",
        "to": wa_id,
        "type": "template",
        "template": {
            "name": template_name,
            "language": {"code": language},
        },
    }
    if components:
        payload["template"]["components"] = components
    return _send(payload)


def certificate_components(image_url: str, recipient_name: str, custom_message: str = None):
    """
    Header image + body text parameters for the certificate template.
    The body gets the recipient name, then the custom message when there is one.
    """
    body_params = [{"type": "text", "text": recipient_name}]
    if custom_message:
        body_params.append({"type": "text", "text": custom_message})

    return [
        {
            "type": "header",
            "parameters": [{"type": "image", "image": {"link": image_url}}],
        },
        {
            "type": "body",
            "parameters": body_params,
        },
    ]
