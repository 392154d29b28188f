import os
import logging
import json
import time
import smtplib
import contextvars
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Dict, List, Optional, Tuple

import azure.functions as func
from dotenv import load_dotenv
from azure.core import MatchConditions
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    ResourceExistsError,
    ResourceModifiedError,
    ResourceNotFoundError,
)
from azure.identity import DefaultAzureCredential
from azure.mgmt.iothub import IotHubClient
from azure.storage.blob import BlobServiceClient

from iothub_sku import (
    SCALE_DOWN,
    SCALE_UP,
    Capacity,
    get_scale_target,
    get_sku_unit_threshold,
    get_tier,
    should_scale,
)

load_dotenv()
app = func.FunctionApp()

# -----------------------------------------------------------------------------
# Logging context (propagates invocation ID across the run)
# -----------------------------------------------------------------------------
INVOCATION_ID = contextvars.ContextVar("invocation_id", default=None)


class InvocationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        invocation_id = INVOCATION_ID.get()
        if invocation_id:
            record.msg = f"[invocation_id={invocation_id}] {record.msg}"
        return True


root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)
root_logger.addFilter(InvocationIdFilter())
logging.getLogger("azure").setLevel(logging.INFO)
logging.getLogger("azure.core").setLevel(logging.INFO)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
class ScaleError(Exception):
    pass


class AuthenticationFailure(ScaleError):
    pass


class ResourceReadFailure(ScaleError):
    pass


class UsageMetricMissing(ResourceReadFailure):
    pass


class ResourceWriteFailure(ScaleError):
    pass


class NotificationFailure(ScaleError):
    pass


# -----------------------------------------------------------------------------
# Config
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class IotHubConfig:
    subscription_id: str
    resource_group: str
    hub_name: str


@dataclass(frozen=True)
class ScalingConfig:
    scale_up_threshold_percent: int
    scale_down_threshold_percent: int
    quota_metric_name: str
    watch_loop_interval_minutes: float
    watch_loop_instance_name: str
    watch_loop_lease_minutes: float = 15.0

    def threshold_percent(self, direction: str) -> int:
        if direction == SCALE_DOWN:
            return self.scale_down_threshold_percent
        return self.scale_up_threshold_percent


@dataclass(frozen=True)
class LockStoreConfig:
    connection_str: Optional[str]
    container_name: str


@dataclass(frozen=True)
class NotificationConfig:
    enabled: bool
    smtp_host: str
    smtp_port: int
    username: Optional[str]
    password: Optional[str]
    sender: Optional[str]
    sender_name: str
    recipients: List[str]


@dataclass(frozen=True)
class Config:
    iothub: IotHubConfig
    scaling: ScalingConfig
    lock_store: LockStoreConfig
    notification: NotificationConfig


# -----------------------------------------------------------------------------
# Run state
# -----------------------------------------------------------------------------
OUTCOME_NO_ACTION = "no_action"
OUTCOME_BOUNDARY_REACHED = "boundary_reached"
OUTCOME_SCALED = "scaled"


@dataclass
class HubState:
    description: Any
    capacity: Capacity
    usage: int
    sku_tier: Optional[str] = None


@dataclass(frozen=True)
class ScaleResult:
    outcome: str
    direction: str
    current: Capacity
    usage: int
    limit: int
    target: Optional[Capacity] = None
    notified: bool = False


# -----------------------------------------------------------------------------
# SDK clients (lazily initialized to avoid startup timeout)
# -----------------------------------------------------------------------------
_credential = None
_iothub_client = None
_config = None
_watch_loop_scheduler = None

_UPDATE_POLL_SECONDS = 5


# -----------------------------------------------------------------------------
# Environment helpers
# -----------------------------------------------------------------------------
def _get_env(name: str) -> Optional[str]:
    return os.environ.get(name)


def _parse_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _get_int_env(name: str, default: int) -> int:
    value = _get_env(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logging.warning("Invalid int for %s=%s, using %s", name, value, default)
        return default


def _get_float_env(name: str, default: float) -> float:
    value = _get_env(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logging.warning("Invalid float for %s=%s, using %s", name, value, default)
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    value = _get_env(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise EnvironmentError(f"Missing required env var: {name}")
    return value


def _get_percent_env(name: str, default: int) -> int:
    value = _get_int_env(name, default)
    if not 0 <= value <= 100:
        raise EnvironmentError(f"{name} must be between 0 and 100, got {value}")
    return value


def _get_positive_float_env(name: str, default: float) -> float:
    value = _get_float_env(name, default)
    if value <= 0:
        raise EnvironmentError(f"{name} must be greater than 0, got {value}")
    return value


# -----------------------------------------------------------------------------
# Config and client helpers
# -----------------------------------------------------------------------------
def _build_notification_config() -> NotificationConfig:
    enabled = _get_bool_env("NOTIFY_ENABLED", True)
    password = _get_env("NOTIFY_SMTP_PASSWORD") or _get_env("SENDGRID_API_KEY")
    sender = _get_env("NOTIFY_FROM")
    recipients = _parse_csv(_get_env("NOTIFY_TO"))
    if enabled:
        missing = [
            name
            for name, value in (
                ("NOTIFY_SMTP_PASSWORD", password),
                ("NOTIFY_FROM", sender),
                ("NOTIFY_TO", recipients),
            )
            if not value
        ]
        if missing:
            logging.warning(
                "Notifications disabled; missing env vars: %s", ", ".join(missing)
            )
            enabled = False
    return NotificationConfig(
        enabled=enabled,
        smtp_host=_get_env("NOTIFY_SMTP_HOST") or "smtp.sendgrid.net",
        smtp_port=_get_int_env("NOTIFY_SMTP_PORT", 465),
        username=_get_env("NOTIFY_SMTP_USERNAME") or "apikey",
        password=password,
        sender=sender,
        sender_name=_get_env("NOTIFY_FROM_NAME") or "IoT Hub Scaler",
        recipients=recipients,
    )


def _get_config() -> Config:
    global _config
    if _config is None:
        _config = Config(
            iothub=IotHubConfig(
                subscription_id=_require_env("AZURE_SUBSCRIPTION_ID"),
                resource_group=_require_env("IOTHUB_RESOURCE_GROUP"),
                hub_name=_require_env("IOTHUB_NAME"),
            ),
            scaling=ScalingConfig(
                scale_up_threshold_percent=_get_percent_env(
                    "SCALE_UP_THRESHOLD_PERCENT", 90
                ),
                scale_down_threshold_percent=_get_percent_env(
                    "SCALE_DOWN_THRESHOLD_PERCENT", 90
                ),
                quota_metric_name=_get_env("IOTHUB_QUOTA_METRIC") or "TotalMessages",
                watch_loop_interval_minutes=_get_positive_float_env(
                    "WATCH_LOOP_INTERVAL_MINUTES", 10.0
                ),
                watch_loop_instance_name=_get_env("WATCH_LOOP_INSTANCE_NAME")
                or "IotHubScaleOrchestrator_1",
                watch_loop_lease_minutes=_get_positive_float_env(
                    "WATCH_LOOP_LEASE_MINUTES", 15.0
                ),
            ),
            lock_store=LockStoreConfig(
                connection_str=_get_env("WATCH_LOOP_STORAGE_CONNECTION_STR")
                or _get_env("AzureWebJobsStorage"),
                container_name=_get_env("WATCH_LOOP_CONTAINER")
                or "iothub-scale-locks",
            ),
            notification=_build_notification_config(),
        )
    return _config


def _log_config_summary(config: Config) -> None:
    logging.info("Config categories and required envs:")
    logging.info(
        "IoT Hub (required): AZURE_SUBSCRIPTION_ID, IOTHUB_RESOURCE_GROUP, IOTHUB_NAME"
    )
    logging.info(
        "Scaling (optional defaults): SCALE_UP_THRESHOLD_PERCENT, "
        "SCALE_DOWN_THRESHOLD_PERCENT, IOTHUB_QUOTA_METRIC"
    )
    logging.info(
        "Watch loop (scale up): WATCH_LOOP_STORAGE_CONNECTION_STR "
        "(or AzureWebJobsStorage), WATCH_LOOP_CONTAINER, "
        "WATCH_LOOP_INTERVAL_MINUTES, WATCH_LOOP_INSTANCE_NAME, WATCH_LOOP_LEASE_MINUTES"
    )
    logging.info(
        "Notifications (optional): NOTIFY_SMTP_PASSWORD or SENDGRID_API_KEY, "
        "NOTIFY_FROM, NOTIFY_TO, NOTIFY_SMTP_HOST, NOTIFY_SMTP_PORT"
    )
    logging.info(
        "Target hub=%s/%s up=%s%% down=%s%% interval=%smin notifications=%s",
        config.iothub.resource_group,
        config.iothub.hub_name,
        config.scaling.scale_up_threshold_percent,
        config.scaling.scale_down_threshold_percent,
        config.scaling.watch_loop_interval_minutes,
        "on" if config.notification.enabled else "off",
    )


def _get_credential():
    global _credential
    if _credential is None:
        _credential = DefaultAzureCredential()
    return _credential


def _get_iothub_client():
    global _iothub_client
    if _iothub_client is None:
        config = _get_config()
        _iothub_client = IotHubClient(
            _get_credential(), config.iothub.subscription_id
        )
    return _iothub_client


def _get_watch_loop_scheduler():
    global _watch_loop_scheduler
    if _watch_loop_scheduler is None:
        config = _get_config()
        if not config.lock_store.connection_str:
            raise EnvironmentError(
                "Missing required env var: WATCH_LOOP_STORAGE_CONNECTION_STR "
                "(or AzureWebJobsStorage)"
            )
        service = BlobServiceClient.from_connection_string(
            config.lock_store.connection_str
        )
        container = service.get_container_client(config.lock_store.container_name)
        try:
            container.create_container()
        except ResourceExistsError:
            pass
        _watch_loop_scheduler = WatchLoopScheduler(
            container,
            config.scaling.watch_loop_interval_minutes,
            config.scaling.watch_loop_lease_minutes,
        )
    return _watch_loop_scheduler


# -----------------------------------------------------------------------------
# Resource reader / writer
# -----------------------------------------------------------------------------
def _get_hub_state(config: Config) -> HubState:
    """Read the hub's SKU, capacity and current message count."""
    resource_group = config.iothub.resource_group
    hub_name = config.iothub.hub_name
    try:
        client = _get_iothub_client()
        description = client.iot_hub_resource.get(resource_group, hub_name)
        metrics = list(
            client.iot_hub_resource.get_quota_metrics(resource_group, hub_name)
        )
    except ClientAuthenticationError as exc:
        raise AuthenticationFailure(
            f"Unable to authenticate to read IoT Hub {hub_name}: {exc}"
        ) from exc
    except AzureError as exc:
        raise ResourceReadFailure(
            f"Unable to read IoT Hub {resource_group}/{hub_name}: {exc}"
        ) from exc

    sku = getattr(description, "sku", None)
    if sku is None:
        raise ResourceReadFailure(f"IoT Hub {hub_name} has no SKU information")
    try:
        capacity = Capacity(get_tier(sku.name), int(sku.capacity))
    except (TypeError, ValueError) as exc:
        raise ResourceReadFailure(
            f"Unsupported SKU for IoT Hub {hub_name}: {exc}"
        ) from exc

    usage = None
    for info in metrics:
        if getattr(info, "name", None) == config.scaling.quota_metric_name:
            usage = getattr(info, "current_value", None)
    if usage is None:
        raise UsageMetricMissing(
            f"Unable to retrieve current {config.scaling.quota_metric_name} "
            f"count for IoT Hub {hub_name}"
        )

    return HubState(
        description=description,
        capacity=capacity,
        usage=int(usage),
        sku_tier=getattr(sku, "tier", None),
    )


def _set_hub_capacity(config: Config, state: HubState, target: Capacity) -> float:
    """Submit the new SKU name and capacity and wait for it to apply.

    Returns the elapsed seconds. The update is guarded by the description's
    etag so a concurrent change is rejected rather than overwritten.
    """
    resource_group = config.iothub.resource_group
    hub_name = config.iothub.hub_name
    description = state.description
    description.sku.name = target.tier.name
    description.sku.capacity = target.units

    started = time.monotonic()
    try:
        poller = _get_iothub_client().iot_hub_resource.begin_create_or_update(
            resource_group,
            hub_name,
            description,
            if_match=getattr(description, "etag", None),
        )
        previous_status = None
        while not poller.done():
            current_status = poller.status()
            if previous_status != current_status:
                logging.info(
                    "Updating IoT Hub %s to %s... Status: %s",
                    hub_name,
                    target,
                    current_status,
                )
                previous_status = current_status
            time.sleep(_UPDATE_POLL_SECONDS)
        poller.result()
    except AzureError as exc:
        logging.error(
            "IoT Hub %s update from %s to %s failed: %s",
            hub_name,
            state.capacity,
            target,
            exc,
        )
        raise ResourceWriteFailure(
            f"Unable to update IoT Hub {hub_name} to {target}: {exc}"
        ) from exc
    return time.monotonic() - started


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------
def _deliver_email(notification: NotificationConfig, subject: str, body: str) -> None:
    msg = EmailMessage()
    msg["From"] = formataddr((notification.sender_name, notification.sender))
    msg["To"] = ", ".join(notification.recipients)
    msg["Subject"] = subject
    msg.set_content(body)
    try:
        with smtplib.SMTP_SSL(notification.smtp_host, notification.smtp_port) as server:
            server.login(notification.username, notification.password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise NotificationFailure(
            f"Unable to send email via {notification.smtp_host}:"
            f"{notification.smtp_port}: {exc}"
        ) from exc


def _send_notification(config: Config, subject: str, body: str) -> bool:
    notification = config.notification
    if not notification.enabled:
        logging.info("Notifications disabled, not sending: %s", subject)
        return False
    try:
        _deliver_email(notification, subject, body)
    except NotificationFailure as exc:
        logging.warning("Notification not sent (capacity change stands): %s", exc)
        return False
    logging.info(
        "Notification sent to %s: %s", ", ".join(notification.recipients), subject
    )
    return True


def _build_scale_message(
    config: Config, direction: str, state: HubState, target: Capacity, limit: int
) -> Tuple[str, str]:
    subject = (
        f"IoT Hub Scale {direction} to {target.tier.name} and {target.units} Units."
    )
    body = (
        f"IoT Hub {config.iothub.hub_name} scaled {direction} from {state.capacity} "
        f"to {target} (message count {state.usage}, threshold {limit})."
    )
    return subject, body


# -----------------------------------------------------------------------------
# Scaling logic
# -----------------------------------------------------------------------------
def _scale_iot_hub(direction: str) -> ScaleResult:
    """Scale logic:
    - Read the hub's SKU, units and message count
    - Compare the count with the threshold for the direction
    - Step one unit (crossing tiers at the ladder ceiling) and submit it
    - Notify
    """
    config = _get_config()
    hub_name = config.iothub.hub_name
    percent = config.scaling.threshold_percent(direction)
    logging.info("[%s] Starting scale %s evaluation", hub_name, direction)

    try:
        state = _get_hub_state(config)
    except AuthenticationFailure as exc:
        logging.error("[%s] Authentication failed: %s", hub_name, exc)
        raise
    except ResourceReadFailure as exc:
        logging.error("[%s] Unable to read IoT Hub state: %s", hub_name, exc)
        raise

    capacity = state.capacity
    limit = get_sku_unit_threshold(capacity.tier, capacity.units, percent, direction)

    logging.info("[%s] Current SKU Tier: %s", hub_name, state.sku_tier)
    logging.info("[%s] Current SKU Name: %s", hub_name, capacity.tier.name)
    logging.info("[%s] Current SKU Capacity: %s", hub_name, capacity.units)
    logging.info("[%s] Current Message Count: %s", hub_name, state.usage)
    logging.info(
        "[%s] Current Sku/Unit Message Threshold (%s%%): %s", hub_name, percent, limit
    )

    if not should_scale(state.usage, limit, direction):
        logging.info(
            "[%s] Current message count of %s is %s the threshold of %s. Nothing to do",
            hub_name,
            state.usage,
            "above" if direction == SCALE_DOWN else "below",
            limit,
        )
        return ScaleResult(
            outcome=OUTCOME_NO_ACTION,
            direction=direction,
            current=capacity,
            usage=state.usage,
            limit=limit,
        )
    logging.info(
        "[%s] Current message count of %s crossed the threshold of %s. "
        "Need to scale %s IoT Hub",
        hub_name,
        state.usage,
        limit,
        direction,
    )

    target = get_scale_target(capacity, direction)
    if target is None:
        logging.info(
            "[%s] IoT Hub is already at %s, the %s limit for its tier; nothing to do",
            hub_name,
            capacity,
            direction,
        )
        return ScaleResult(
            outcome=OUTCOME_BOUNDARY_REACHED,
            direction=direction,
            current=capacity,
            usage=state.usage,
            limit=limit,
        )

    elapsed = _set_hub_capacity(config, state, target)
    logging.info(
        "[%s] Updated IoT Hub from %s to %s in %.1f seconds",
        hub_name,
        capacity,
        target,
        elapsed,
    )

    subject, body = _build_scale_message(config, direction, state, target, limit)
    notified = _send_notification(config, subject, body)
    return ScaleResult(
        outcome=OUTCOME_SCALED,
        direction=direction,
        current=capacity,
        usage=state.usage,
        limit=limit,
        target=target,
        notified=notified,
    )


# -----------------------------------------------------------------------------
# Watch loop (single-flight scale-up scheduling)
# -----------------------------------------------------------------------------
STATUS_WAITING = "waiting"
STATUS_RUNNING = "running"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class WatchLoopScheduler:
    """Single-flight watch loop state kept as one JSON blob per instance name.

    Every write is conditional on the blob's etag (or on the blob not
    existing), so concurrent hosts cannot both start or claim an instance.
    An instance whose last activity is older than the stale window is
    treated as gone and may be started again.

    A claim holds the instance for the lease only. The hub update is not
    time limited, so a run that outlasts the lease can overlap with the
    next claim; the etag on the hub update then rejects the later write.
    Set WATCH_LOOP_LEASE_MINUTES above the longest expected update.
    """

    def __init__(
        self,
        container_client,
        interval_minutes: float,
        lease_minutes: float = 15.0,
    ):
        self._container = container_client
        self._stale_after = timedelta(
            minutes=max(interval_minutes * 3, lease_minutes + interval_minutes, 30.0)
        )
        self._lease = timedelta(minutes=lease_minutes)

    def _blob(self, name: str):
        return self._container.get_blob_client(f"{name}.json")

    def _read(self, name: str) -> Tuple[Optional[Dict], Optional[str]]:
        try:
            downloader = self._blob(name).download_blob()
        except ResourceNotFoundError:
            return None, None
        etag = downloader.properties.etag
        try:
            record = json.loads(downloader.readall())
        except ValueError:
            logging.warning("Watch loop record %s is unreadable; replacing it", name)
            return {}, etag
        return record, etag

    def _write(self, name: str, record: Dict, etag: Optional[str]) -> bool:
        data = json.dumps(record)
        try:
            if etag is None:
                self._blob(name).upload_blob(data, overwrite=False)
            else:
                self._blob(name).upload_blob(
                    data,
                    overwrite=True,
                    etag=etag,
                    match_condition=MatchConditions.IfNotModified,
                )
        except (ResourceExistsError, ResourceModifiedError):
            logging.info("Watch loop record %s was changed by another host", name)
            return False
        return True

    def _is_active(self, record: Optional[Dict]) -> bool:
        if not record:
            return False
        last_active = _parse_timestamp(record.get("last_active"))
        if last_active is None:
            return False
        return _utcnow() - last_active <= self._stale_after

    def is_instance_active(self, name: str) -> bool:
        record, _ = self._read(name)
        return self._is_active(record)

    def start_instance(self, name: str, owner: Optional[str] = None) -> bool:
        record, etag = self._read(name)
        if self._is_active(record):
            return False
        now = _utcnow().isoformat()
        return self._write(
            name,
            {
                "instance_name": name,
                "status": STATUS_WAITING,
                "started_at": now,
                "last_active": now,
                "resume_at": now,
                "owner": owner,
            },
            etag,
        )

    def claim_due(self, name: str, owner: Optional[str] = None) -> bool:
        """Mark the instance running if its resume time has passed."""
        record, etag = self._read(name)
        if not self._is_active(record):
            return False
        now = _utcnow()
        resume_at = _parse_timestamp(record.get("resume_at"))
        if resume_at is not None and now < resume_at:
            return False
        record.update(
            status=STATUS_RUNNING,
            last_active=now.isoformat(),
            resume_at=(now + self._lease).isoformat(),
            owner=owner,
        )
        return self._write(name, record, etag)

    def schedule_resume_after(self, name: str, interval: timedelta) -> bool:
        record, etag = self._read(name)
        now = _utcnow()
        record = record or {"instance_name": name, "started_at": now.isoformat()}
        record.update(
            status=STATUS_WAITING,
            last_active=now.isoformat(),
            resume_at=(now + interval).isoformat(),
        )
        return self._write(name, record, etag)


def _run_watch_loop_tick(scheduler=None) -> Optional[ScaleResult]:
    config = _get_config()
    scheduler = scheduler or _get_watch_loop_scheduler()
    name = config.scaling.watch_loop_instance_name
    owner = INVOCATION_ID.get()

    if scheduler.is_instance_active(name):
        logging.info(
            "An instance of %s job is already running, nothing to start...", name
        )
    else:
        logging.info("%s job not running, starting new instance...", name)
        scheduler.start_instance(name, owner)

    if not scheduler.claim_due(name, owner):
        logging.info("%s is not due or is held by another host", name)
        return None

    logging.info("%s started", name)
    interval_minutes = config.scaling.watch_loop_interval_minutes
    try:
        return _scale_iot_hub(SCALE_UP)
    finally:
        scheduler.schedule_resume_after(name, timedelta(minutes=interval_minutes))
        logging.info(
            "%s done... tee'ing up next run in %s minutes.", name, interval_minutes
        )


# -----------------------------------------------------------------------------
# Timer triggers
# -----------------------------------------------------------------------------
@app.function_name(name="IotHubScaleDownInit")
@app.timer_trigger(schedule="0 30 23 * * *", arg_name="mytimer")
def scale_down(mytimer: func.TimerRequest, context: func.Context) -> None:
    INVOCATION_ID.set(getattr(context, "invocation_id", None))
    logging.info("===== IOT HUB SCALE DOWN TRIGGERED at %s =====", _utcnow())
    if mytimer.past_due:
        logging.warning("Scale down timer is past due")
    config = _get_config()
    _log_config_summary(config)

    try:
        result = _scale_iot_hub(SCALE_DOWN)
        logging.info("Scale down completed: %s", result.outcome)
    except Exception as e:
        logging.error(f"Scale down failed with exception: {e}")
        logging.exception(e)
        raise

    logging.info("===== IOT HUB SCALE DOWN COMPLETED =====")


@app.function_name(name="IotHubScaleUpInit")
@app.timer_trigger(schedule="0 */1 * * * *", arg_name="mytimer")
def scale_up(mytimer: func.TimerRequest, context: func.Context) -> None:
    INVOCATION_ID.set(getattr(context, "invocation_id", None))
    logging.info("===== IOT HUB SCALE UP TRIGGERED at %s =====", _utcnow())
    if mytimer.past_due:
        logging.warning("Scale up timer is past due")
    config = _get_config()
    _log_config_summary(config)

    try:
        result = _run_watch_loop_tick()
        if result is not None:
            logging.info("Scale up completed: %s", result.outcome)
    except Exception as e:
        logging.error(f"Scale up failed with exception: {e}")
        logging.exception(e)
        raise

    logging.info("===== IOT HUB SCALE UP COMPLETED =====")
