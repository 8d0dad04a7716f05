"""
Advice text provider.

Free-form, non-authoritative text from an external text-generation endpoint.
Nothing here reads or writes ledger state; callers pass in plain values.
"""
from decimal import Decimal
import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from flask import current_app

logger = logging.getLogger(__name__)

PRODUCT_FALLBACK = "AI Analysis currently unavailable. Please try again later."
ADVICE_FALLBACK = "System error. I'm taking a quick break, please try again."


def roi_percentage(price, daily_income, days) -> Decimal:
    price = Decimal(str(price))
    if price <= 0:
        return Decimal("0")
    total = Decimal(str(daily_income)) * int(days)
    return ((total - price) / price * 100).quantize(Decimal("0.01"))


class AdviceClient:

    def __init__(self, api_url=None, api_key=None, timeout=30):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls):
        config = current_app.config
        return cls(
            api_url=config.get("ADVICE_API_URL"),
            api_key=config.get("ADVICE_API_KEY"),
            timeout=config.get("ADVICE_TIMEOUT_SECONDS", 30),
        )

    def _session(self):
        session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def generate(self, prompt, fallback):
        if not self.api_url:
            logger.info("Advice provider not configured, returning fallback text")
            return fallback

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = self._session().post(
                self.api_url,
                json={"prompt": prompt},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            text = (response.json() or {}).get("text")
        except requests.exceptions.Timeout:
            logger.warning(f"Advice provider timeout after {self.timeout} seconds")
            return fallback
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Advice provider error: {e}")
            return fallback

        return text.strip() if isinstance(text, str) and text.strip() else fallback

    def analyze_product(self, product):
        roi = roi_percentage(product.price, product.daily_income, product.days)
        prompt = (
            "Analyze this investment product for a simulation game.\n"
            f"Product Name: {product.name}\n"
            f"Cost: ₹{product.price}\n"
            f"Daily Return: ₹{product.daily_income}\n"
            f"Total Duration: {product.days} days.\n"
            f"ROI: {roi}%\n"
            'Give a brief, fun 2-sentence recommendation on whether this is a "safe" or '
            '"aggressive" growth strategy in the context of a game.'
        )
        return self.generate(prompt, PRODUCT_FALLBACK), roi

    def financial_advice(self, query, balance):
        prompt = (
            "You are a financial advisor in an investment simulation game called Royal Hub.\n"
            f"The user has a current balance of ₹{balance}.\n"
            f'User Query: "{query}"\n'
            "Provide a short, helpful, and safe response (max 50 words). "
            "Remind them this is just a simulation for entertainment."
        )
        return self.generate(prompt, ADVICE_FALLBACK)
