"""
Pre-acceptance decision for posts and comments

Stages run in order and the first failure wins:
    1. heuristic classification of the payload
    2. per-action cooldown (keyed by action and device fingerprint)
    3. block list membership and bot user-agent check
Every failure is written to the audit log; honeypot hits and bot user agents
can also put the fingerprint on the block list.
"""
import logging
from typing import Any, Dict

from services.errors import BLOCKED, RATE_LIMITED, VALIDATION_FAILURE
from services.fingerprint import (
    ClientEnvironment,
    ExtendedFingerprint,
    advanced_fingerprint,
    basic_fingerprint,
    detect_bot_user_agent,
)

logger = logging.getLogger(__name__)

HONEYPOT_REASON = 'Honeypot field filled'


class GuardDecision:
    def __init__(self, allowed, fingerprint, failure=None, reason=None, seconds_remaining=None):
        self.allowed = allowed
        self.fingerprint = fingerprint
        self.failure = failure
        self.reason = reason
        self.seconds_remaining = seconds_remaining

    def to_dict(self):
        data = {
            'allowed': self.allowed,
            'fingerprint': self.fingerprint,
            'failure': self.failure,
            'reason': self.reason,
        }
        if self.seconds_remaining is not None:
            data['secondsRemaining'] = self.seconds_remaining
        return data


class ClientInspection:
    """Result of inspecting a client outside of any submission"""

    def __init__(self, fingerprint, advanced: ExtendedFingerprint, is_bot_ua, is_blocked):
        self.fingerprint = fingerprint
        self.advanced = advanced
        self.is_bot_ua = is_bot_ua
        self.is_blocked = is_blocked

    @property
    def has_canvas_issue(self):
        return self.advanced.has_canvas_issue

    @property
    def has_webgl_issue(self):
        return self.advanced.has_webgl_issue

    @property
    def is_suspicious(self):
        return self.is_bot_ua or self.has_canvas_issue or self.has_webgl_issue

    def to_dict(self):
        return {
            'isBotUA': self.is_bot_ua,
            'isBlocked': self.is_blocked,
            'hasCanvasIssue': self.has_canvas_issue,
            'hasWebGLIssue': self.has_webgl_issue,
            'fingerprint': self.fingerprint,
            'advancedFingerprint': self.advanced.to_dict(),
        }


class SubmissionGuard:
    def __init__(self, classifier, rate_limiter, block_registry, audit_log, rate_limits,
                 block_on_honeypot=True, block_on_bot_user_agent=True, block_duration_ms=None):
        self.classifier = classifier
        self.rate_limiter = rate_limiter
        self.block_registry = block_registry
        self.audit_log = audit_log
        self.rate_limits = rate_limits
        self.block_on_honeypot = block_on_honeypot
        self.block_on_bot_user_agent = block_on_bot_user_agent
        self.block_duration_ms = block_duration_ms

    def _rate_limit_key(self, action, fingerprint):
        base_key, _ = self.rate_limits[action]
        return f"{base_key}:{fingerprint}"

    def _reject(self, action, client, fingerprint, failure, reason, seconds_remaining=None, block=False):
        event = {'action': action, 'reason': reason, 'failure': failure}
        self.audit_log.record(event, client)
        if block:
            self.block_registry.block(fingerprint, self.block_duration_ms, reason=reason)
        logger.info(f"Rejected {action} from {fingerprint}: {reason}")
        return GuardDecision(False, fingerprint, failure, reason, seconds_remaining)

    def evaluate(self, action: str, submission: Dict[str, Any], client: ClientEnvironment) -> GuardDecision:
        """Decide whether a submission for action ('post' or 'comment') may be accepted"""
        if action not in self.rate_limits:
            raise ValueError(f"Unknown action: {action}")

        fingerprint = basic_fingerprint(client)

        classification = self.classifier.classify(submission)
        if classification.is_bot:
            return self._reject(
                action, client, fingerprint, VALIDATION_FAILURE, classification.reason,
                block=self.block_on_honeypot and classification.reason == HONEYPOT_REASON
            )

        _, min_interval = self.rate_limits[action]
        rate = self.rate_limiter.check(self._rate_limit_key(action, fingerprint), min_interval)
        if not rate.allowed:
            return self._reject(
                action, client, fingerprint, RATE_LIMITED,
                f"Please wait {rate.seconds_remaining} second(s) before posting again",
                seconds_remaining=rate.seconds_remaining
            )

        if self.block_registry.is_blocked(fingerprint):
            return self._reject(action, client, fingerprint, BLOCKED, 'Device is temporarily blocked')

        if detect_bot_user_agent(client.user_agent):
            return self._reject(
                action, client, fingerprint, BLOCKED, 'Automated client detected',
                block=self.block_on_bot_user_agent
            )

        return GuardDecision(True, fingerprint)

    def record_success(self, action: str, client: ClientEnvironment) -> bool:
        """Start the cooldown for action once the submission has been stored"""
        if action not in self.rate_limits:
            raise ValueError(f"Unknown action: {action}")
        return self.rate_limiter.record(self._rate_limit_key(action, basic_fingerprint(client)))

    def inspect_client(self, client: ClientEnvironment, canvas_probe=None, webgl_probe=None) -> ClientInspection:
        """Check user agent, block list and rendering probes; audit the client if anything looks automated"""
        advanced = advanced_fingerprint(client, canvas_probe, webgl_probe)
        inspection = ClientInspection(
            fingerprint=advanced.basic,
            advanced=advanced,
            is_bot_ua=detect_bot_user_agent(client.user_agent),
            is_blocked=self.block_registry.is_blocked(advanced.basic),
        )
        if inspection.is_suspicious:
            event = {'reason': 'Advanced bot detection triggered'}
            event.update(inspection.to_dict())
            self.audit_log.record(event, client)
        return inspection
