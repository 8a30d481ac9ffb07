"""
Dashboard backend API client: auth, sheet proxy, costs and user admin.
"""

import os
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000/api"
REQUEST_TIMEOUT = 30


class ApiError(Exception):
    """A backend call failed. `message` is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DashboardApiClient:
    """Client for the dashboard backend (JSON over HTTPS, bearer-token auth)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: int = REQUEST_TIMEOUT,
    ):
        self.base_url = (base_url or os.environ.get("DASHBOARD_API_URL", DEFAULT_API_URL)).rstrip("/")
        self.token = token
        self.timeout = timeout

        # Retry failed connects only; every HTTP response reaches _error_message
        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            connect=3,
            read=0,
            backoff_factor=1,
            allowed_methods=None,
            raise_on_status=False,
            respect_retry_after_header=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update({
            "Content-Type": "application/json",
        })

    def _headers(self, auth: bool = True) -> Dict[str, str]:
        if not auth:
            return {}
        if not self.token:
            raise ApiError("Authentication required")
        return {"Authorization": f"Bearer {self.token}"}

    def _request(
        self,
        method: str,
        path: str,
        default_error: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        auth: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body, raising ApiError on failure."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers(auth),
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise ApiError(f"{default_error}: {e}") from e

        if not response.ok:
            raise ApiError(self._error_message(response, default_error), response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise ApiError(f"{default_error}: invalid response from server", response.status_code)

    @staticmethod
    def _error_message(response: requests.Response, default_error: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return default_error
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or default_error
        return default_error

    # Auth

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Log in and keep the returned token on the client."""
        data = self._request(
            "POST", "auth/login", "Login failed",
            json={"email": email, "password": password}, auth=False,
        )
        self.token = data.get("token")
        if not self.token:
            raise ApiError("Login failed: no token returned")
        return data.get("user") or {}

    def logout(self) -> None:
        self.token = None

    def get_profile(self) -> Dict[str, Any]:
        data = self._request("GET", "auth/profile", "Failed to fetch user profile")
        return data.get("user") or {}

    def update_sheet_url(self, sheet_url: str) -> Dict[str, Any]:
        if not sheet_url or not sheet_url.strip():
            raise ValueError("Sheet URL is required")
        return self._request(
            "PATCH", "auth/update-sheet", "Failed to update sheet URL",
            json={"sheetUrl": sheet_url.strip()},
        )

    def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        if not new_password:
            raise ValueError("New password is required")
        return self._request(
            "PATCH", "auth/change-password", "Failed to change password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    def admin_signup(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        for required in ("email", "password"):
            if not user_data.get(required):
                raise ValueError(f"{required} is required")
        return self._request("POST", "auth/admin/signup", "Failed to create user", json=user_data)

    # Orders

    def fetch_my_sheet_data(self) -> List[Dict[str, Any]]:
        """Raw order rows from the user's configured Google Sheet."""
        data = self._request("GET", "data/mysheet", "Failed to fetch sheet data")
        if isinstance(data, dict):
            data = data.get("data", [])
        if not isinstance(data, list):
            raise ApiError("Invalid response format from server")
        return data

    # Costs

    def get_costs(self) -> Dict[str, Any]:
        data = self._request("GET", "costs", "Failed to fetch costs")
        return {
            "productCosts": data.get("productCosts") or {},
            "adCostsByDate": data.get("adCostsByDate") or {},
        }

    def update_product_cost(self, product: str, value: Any) -> Dict[str, Any]:
        logger.debug("Saving product cost %s=%r", product, value)
        return self._request(
            "PATCH", "costs/product", "Failed to save product cost",
            json={"product": product, "value": value},
        )

    def update_ad_cost(self, day: str, product: str, platform: str, value: Any) -> Dict[str, Any]:
        logger.debug("Saving ad cost %s/%s/%s=%r", day, product, platform, value)
        return self._request(
            "PATCH", "costs/ad", "Failed to save ad cost",
            json={"date": day, "product": product, "platform": platform, "value": value},
        )

    def delete_all_product_costs(self) -> Dict[str, Any]:
        return self._request("DELETE", "costs/product", "Failed to delete product costs")

    def delete_all_ad_costs(self) -> Dict[str, Any]:
        return self._request("DELETE", "costs/ad", "Failed to delete ad costs")

    # Admin

    def fetch_all_users(self) -> List[Dict[str, Any]]:
        data = self._request("GET", "admin/users", "Failed to fetch users")
        users = data.get("users") if isinstance(data, dict) else None
        if not isinstance(users, list):
            raise ApiError("Invalid response format from server")
        return [
            {**user, "isActive": user.get("isActive") if isinstance(user.get("isActive"), bool) else True}
            for user in users
        ]

    def fetch_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"admin/users/{quote(str(user_id))}", "Failed to fetch user")

    def update_user(self, user_id: str, user_data: Dict[str, Any]) -> Dict[str, Any]:
        payload = dict(user_data)
        if not isinstance(payload.get("isActive"), bool):
            payload["isActive"] = True
        return self._request(
            "PUT", f"admin/users/{quote(str(user_id))}", "Failed to update user", json=payload,
        )

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        data = self._request("DELETE", f"admin/users/{quote(str(user_id))}", "Failed to delete user")
        return {
            "success": True,
            "message": data.get("message"),
            "deletedUser": data.get("deletedUser"),
        }

    def fetch_user_sheet_data(self, user_id: str, sheet_url: Optional[str] = None) -> Any:
        params = {"sheetUrl": sheet_url} if sheet_url else None
        return self._request(
            "GET", f"admin/users/{quote(str(user_id))}/sheet-data",
            "Failed to fetch user sheet data", params=params,
        )


def check_connection(client: DashboardApiClient) -> bool:
    """Test if the backend accepts the client's token."""
    try:
        client.get_profile()
        return True
    except ApiError:
        return False
