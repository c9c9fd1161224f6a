"""
天翼云盘认证实现

RSA 密码登录：登录页提取临时参数 → 获取公钥加密账号密码 → 提交表单 → 用跳转地址换取会话（XML）
"""
import base64
import logging
import re
import textwrap
import time
import xml.etree.ElementTree as ET
from typing import Dict

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding

from ...core.exceptions import AuthenticationError, CaptchaRequiredError, ProtocolError
from ...core.http import parse_object, send
from .config import Cloud189Conf, Cloud189Save, Config189, default_config

logger = logging.getLogger(__name__)

_LOGIN_PATTERNS = {
    "captcha_token": r"'captchaToken' value='(.+?)'",
    "lt": r'lt = "(.+?)"',
    "param_id": r'paramId = "(.+?)"',
    "req_id": r'reqId = "(.+?)"',
}


def rsa_encrypt(public_key: str, text: str) -> str:
    """RSA PKCS#1 v1.5 加密，返回 base64"""
    body = "\n".join(textwrap.wrap(public_key.strip(), 64))
    pem = f"-----BEGIN PUBLIC KEY-----\n{body}\n-----END PUBLIC KEY-----"
    try:
        key = serialization.load_pem_public_key(pem.encode("ascii"))
    except ValueError as e:
        raise ProtocolError(f"Invalid RSA public key: {e}") from e
    cipher = key.encrypt(text.encode("utf-8"), padding.PKCS1v15())
    return base64.b64encode(cipher).decode("ascii")


def parse_session_xml(text: str) -> Dict[str, str]:
    """解析 getSessionForPC 返回的 XML，标签名统一转小写"""
    try:
        root = ET.fromstring(text.strip())
    except ET.ParseError as e:
        raise ProtocolError(f"Invalid session response: {text[:200]}") from e
    return {child.tag.lower(): (child.text or "").strip() for child in root}


class Auth189:
    """天翼云盘登录"""

    def __init__(self, client: httpx.AsyncClient, conf: Cloud189Conf, config: Config189 = None):
        self.client = client
        self.conf = conf
        self.config = config or default_config

    async def login(self) -> Cloud189Save:
        """完整登录流程

        Raises:
            CaptchaRequiredError: 需要验证码，需人工处理
            AuthenticationError: 登录失败
            ProtocolError: 响应格式不符合预期
        """
        params = await self._login_params()
        encrypt = await self._encrypt_conf()
        username = encrypt["pre"] + rsa_encrypt(encrypt["pubKey"], self.conf.username)
        password = encrypt["pre"] + rsa_encrypt(encrypt["pubKey"], self.conf.password)

        if await self._need_captcha(username, params["req_id"]) and not self.conf.validate_code:
            raise CaptchaRequiredError("Captcha required, please fill in validate_code")

        response = await send(
            self.client, "POST", f"{self.config.AUTH_URL}/api/logbox/oauth2/loginSubmit.do",
            data={
                "appKey": self.config.APP_ID,
                "accountType": self.config.ACCOUNT_TYPE,
                "userName": username,
                "password": password,
                "validateCode": self.conf.validate_code,
                "captchaToken": params["captcha_token"],
                "returnUrl": self.config.RETURN_URL,
                "dynamicCheck": "FALSE",
                "clientType": self.config.CLIENT_TYPE,
                "cb_SaveName": "1",
                "isOauth2": "false",
                "state": "",
                "paramId": params["param_id"],
            },
            headers={
                "REQID": params["req_id"],
                "lt": params["lt"],
                "Referer": self.config.AUTH_URL,
            },
        )
        result = parse_object(response)
        to_url = result.get("toUrl") or result.get("ToUrl")
        if not to_url:
            message = result.get("msg") or "unknown error"
            logger.error(f"189 login failed: {message}")
            if "验证码" in message or "captcha" in message.lower():
                raise CaptchaRequiredError(f"login failed, msg: {message}")
            raise AuthenticationError(f"login failed, msg: {message}")

        return await self._session({"redirectURL": to_url})

    async def refresh(self, saving: Cloud189Save) -> Cloud189Save:
        """用 accessToken 重新换取会话"""
        if not saving.access_token:
            raise AuthenticationError("No access token available")
        return await self._session({"appId": self.config.APP_ID, "accessToken": saving.access_token})

    async def _login_params(self) -> Dict[str, str]:
        response = await send(
            self.client, "GET", f"{self.config.WEB_URL}/api/portal/unifyLoginForPC.action",
            params={
                "appId": self.config.APP_ID,
                "clientType": self.config.CLIENT_TYPE,
                "returnURL": self.config.RETURN_URL,
                "timeStamp": str(int(time.time() * 1000)),
            },
        )
        params = {}
        for key, pattern in _LOGIN_PATTERNS.items():
            match = re.search(pattern, response.text)
            if not match:
                raise ProtocolError(f"Failed to extract login parameter: {key}")
            params[key] = match.group(1)
        return params

    async def _encrypt_conf(self) -> Dict[str, str]:
        response = await send(
            self.client, "POST", f"{self.config.AUTH_URL}/api/logbox/config/encryptConf.do",
            data={"appId": self.config.APP_ID},
        )
        data = parse_object(response).get("data") or {}
        if not isinstance(data, dict) or not data.get("pubKey") or not data.get("pre"):
            raise ProtocolError("Failed to fetch RSA public key")
        return data

    async def _need_captcha(self, username: str, req_id: str) -> bool:
        response = await send(
            self.client, "POST", f"{self.config.AUTH_URL}/api/logbox/oauth2/needcaptcha.do",
            data={
                "accountType": self.config.ACCOUNT_TYPE,
                "userName": username,
                "appKey": self.config.APP_ID,
            },
            headers={"REQID": req_id},
        )
        return response.text.strip() not in ("", "0")

    async def _session(self, params: Dict[str, str]) -> Cloud189Save:
        response = await send(
            self.client, "POST", f"{self.config.API_URL}/getSessionForPC.action",
            params={
                "clientType": self.config.PC_CLIENT_TYPE,
                "version": self.config.VERSION,
                "channelId": self.config.CHANNEL_ID,
                "rand": str(int(time.time() * 1000)),
                **params,
            },
        )
        data = parse_session_xml(response.text)
        res_code = data.get("res_code") or data.get("rescode") or data.get("code")
        if res_code not in (None, "", "0") or not data.get("sessionkey"):
            message = data.get("res_message") or data.get("resmessage") or data.get("message") or res_code
            raise AuthenticationError(f"Failed to get session: {message}")

        return Cloud189Save(
            session_key=data["sessionkey"],
            session_secret=data.get("sessionsecret"),
            access_token=data.get("accesstoken"),
            refresh_token=data.get("refreshtoken"),
            login_name=data.get("loginname"),
            created_at=time.time(),
        )
