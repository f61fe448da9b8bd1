"""DeploymentOrchestrator: sequence stack reconciliation across regions.

Phases, in order:

* ``preconditions``: validate the request, resolve credentials, ensure
  the main template bucket exists.
* ``dns``: DNS zone records and the CloudFront certificate, always in
  the certificate region (CloudFront only accepts ACM certs from there).
* ``main``: package Lambdas, upload templates, converge the main stack.
* ``domain``: bind the distribution to the domain, then re-run the DNS
  stack so its records can alias the distribution.
* ``email``: SES receiving/forwarding stack.  Failures here are logged
  and do not fail the deployment.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .cdn import DistributionDomainBinder
from .config import DNS_TEMPLATE, EMAIL_TEMPLATE, MAIN_TEMPLATES, DeployConfig
from .credentials import AwsClients, CredentialResolver
from .errors import ConfigurationError, PackagingError, StackNoChanges
from .models import DeploymentRequest, StackDescriptor, StackOutputs, stack_name
from .packager import ArtifactPackager, ZipArtifactPackager
from .phases import (
    DeploymentContext,
    Phase,
    always,
    custom_domain_enabled,
    domain_wiring_ready,
    run_phases,
)
from .reconciler import StackReconciler
from .ses import activate_receipt_rule_set
from .smtp import SmtpCredential
from .storage import ObjectStore

logger = structlog.get_logger()

PackagerFactory = Callable[..., ArtifactPackager]


def validate_request(request: DeploymentRequest) -> None:
    """Raise :class:`ConfigurationError` unless domain and zone come as a pair."""
    if request.domain_name and not request.hosted_zone_id:
        raise ConfigurationError("--hosted-zone-id is required when --domain-name is specified")
    if request.hosted_zone_id and not request.domain_name:
        raise ConfigurationError("--domain-name is required when --hosted-zone-id is specified")


class DeploymentOrchestrator:
    """Run the fixed phase list for one :class:`DeploymentRequest`."""

    def __init__(
        self,
        config: DeployConfig,
        *,
        resolver: CredentialResolver | None = None,
        packager_factory: PackagerFactory = ZipArtifactPackager,
    ) -> None:
        self._config = config
        self._resolver = resolver or CredentialResolver(config.aws)
        self._packager_factory = packager_factory
        self._reconciler: StackReconciler | None = None

    @property
    def phases(self) -> tuple[Phase, ...]:
        return (
            Phase("preconditions", self._run_preconditions, always),
            Phase("dns", self._run_dns, custom_domain_enabled),
            Phase("main", self._run_main, always),
            Phase("domain", self._run_domain, domain_wiring_ready),
            Phase("email", self._run_email, custom_domain_enabled, fatal=False),
        )

    async def deploy(self, request: DeploymentRequest) -> DeploymentContext:
        """Deploy everything *request* asks for.

        Raises on the first fatal error; remote changes made up to that
        point are left in place.
        """
        logger.info(
            "deployment_started",
            stage=request.stage,
            region=request.region,
            domain=request.domain_name,
        )

        ctx = DeploymentContext(request=request, production_stage=self._config.production_stage)
        if request.has_custom_domain and not request.is_production(ctx.production_stage):
            ctx.warn(
                "custom_domain_requires_production",
                stage=request.stage,
                production_stage=self._config.production_stage,
                detail="skipping DNS, domain and email phases",
            )

        await run_phases(self.phases, ctx)

        logger.info(
            "deployment_completed",
            stage=request.stage,
            phases_run=ctx.phases_run,
            phases_skipped=ctx.phases_skipped,
            phases_failed=ctx.phases_failed,
            warnings=len(ctx.warnings),
        )
        if "domain" in ctx.phases_run:
            logger.info("site_available", url=f"https://{request.domain_name}")
        return ctx

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def _main_bucket(self, stage: str) -> str:
        return stack_name(self._config.stack_prefix, self._config.app_name, "templates", stage)

    def _main_stack(self, stage: str) -> str:
        return stack_name(self._config.stack_prefix, self._config.app_name, stage)

    def _regional_names(self, purpose: str, stage: str) -> tuple[str, str]:
        """(stack name, template bucket) of a certificate-region stack."""
        app = self._config.app_name
        return stack_name(app, purpose, stage), stack_name(app, purpose, "templates", stage)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clients(self, ctx: DeploymentContext) -> AwsClients:
        assert ctx.clients is not None, "preconditions phase has not run"
        return ctx.clients

    @property
    def reconciler(self) -> StackReconciler:
        assert self._reconciler is not None, "preconditions phase has not run"
        return self._reconciler

    def _packager(self, store: ObjectStore, bucket: str) -> ArtifactPackager:
        return self._packager_factory(
            store,
            bucket=bucket,
            source_dir=self._config.lambda_source_dir,
            key_prefix=self._config.lambda_key_prefix,
            dependencies_dir=self._config.lambda_dependencies_dir,
            python_version=self._config.lambda_python_version,
        )

    # ------------------------------------------------------------------
    # Phase 0: preconditions
    # ------------------------------------------------------------------

    async def _run_preconditions(self, ctx: DeploymentContext) -> None:
        validate_request(ctx.request)
        ctx.clients = await self._resolver.resolve(ctx.request.region)
        self._reconciler = StackReconciler(ctx.clients, self._config.poll)

        store = ObjectStore(ctx.clients, ctx.request.region)
        await store.ensure_bucket(self._main_bucket(ctx.request.stage))

    # ------------------------------------------------------------------
    # Phase 1: DNS & certificate
    # ------------------------------------------------------------------

    async def _run_dns(self, ctx: DeploymentContext) -> None:
        ctx.certificate_arn = await self._deploy_dns(ctx, cloudfront_domain_name="")
        if ctx.certificate_arn:
            logger.info("certificate_ready", certificate_arn=ctx.certificate_arn)
        else:
            ctx.warn("certificate_missing", detail="domain configuration will be skipped")

    async def _deploy_dns(self, ctx: DeploymentContext, *, cloudfront_domain_name: str) -> str:
        """Converge the DNS stack.  Returns the certificate ARN (may be empty)."""
        request = ctx.request
        region = self._config.certificate_region
        name, bucket = self._regional_names("dns", request.stage)

        store = ObjectStore(self._clients(ctx), region)
        await store.ensure_bucket(bucket)
        local, key = DNS_TEMPLATE
        template_url = await store.upload_template(bucket, self._config.templates_dir, local, key)

        descriptor = StackDescriptor(
            name=name,
            region=region,
            template_url=template_url,
            parameters=(
                ("Stage", request.stage),
                ("DomainName", request.domain_name or ""),
                ("HostedZoneId", request.hosted_zone_id or ""),
                ("CloudFrontDomainName", cloudfront_domain_name),
            ),
        )
        outputs = await self.reconciler.reconcile(descriptor)
        return outputs.value("CertificateArn")

    # ------------------------------------------------------------------
    # Phase 2: main infrastructure
    # ------------------------------------------------------------------

    async def _run_main(self, ctx: DeploymentContext) -> None:
        request = ctx.request
        bucket = self._main_bucket(request.stage)
        store = ObjectStore(self._clients(ctx), request.region)

        # Stale code must never ship: any packaging failure aborts the run.
        ctx.lambda_uris = await self._packager(store, bucket).compile_all()

        await store.upload_templates(bucket, self._config.templates_dir, MAIN_TEMPLATES)

        descriptor = StackDescriptor(
            name=self._main_stack(request.stage),
            region=request.region,
            template_url=store.template_url(bucket, MAIN_TEMPLATES[0][1]),
            parameters=(
                ("Stage", request.stage),
                ("AppName", self._config.app_name),
                ("TemplateBucketName", bucket),
                ("LogRetentionInDays", str(self._config.log_retention_days)),
            ),
            disable_rollback=True,
        )
        try:
            outputs = await self.reconciler.reconcile(descriptor)
        except StackNoChanges:
            logger.info("stack_up_to_date", stack=descriptor.name)
            outputs = await self.reconciler.outputs(descriptor)

        self._log_outputs(descriptor.name, outputs)
        ctx.distribution_id = outputs.value("CloudFrontDistributionId")
        ctx.distribution_domain_name = outputs.value("CloudFrontDomainName")

        if ctx.certificate_arn and not (ctx.distribution_id and ctx.distribution_domain_name):
            ctx.warn(
                "distribution_outputs_missing",
                stack=descriptor.name,
                detail="skipping custom domain configuration",
            )

    def _log_outputs(self, stack: str, outputs: StackOutputs) -> None:
        for key, value in outputs.items():
            logger.info("stack_output", stack=stack, key=key, value=value)

    # ------------------------------------------------------------------
    # Phase 3: domain wiring
    # ------------------------------------------------------------------

    async def _run_domain(self, ctx: DeploymentContext) -> None:
        request = ctx.request
        assert request.domain_name is not None
        binder = DistributionDomainBinder(self._clients(ctx).client("cloudfront", request.region))
        await binder.bind(ctx.distribution_id, request.domain_name, ctx.certificate_arn)

        # Second pass: the DNS stack can now alias the distribution.
        await self._deploy_dns(ctx, cloudfront_domain_name=ctx.distribution_domain_name)
        logger.info(
            "custom_domain_configured",
            domain=request.domain_name,
            detail="DNS propagation may take a few minutes",
        )

    # ------------------------------------------------------------------
    # Phase 4: email (non-fatal)
    # ------------------------------------------------------------------

    async def _run_email(self, ctx: DeploymentContext) -> None:
        request = ctx.request
        forward_to = self._config.forward_to_email
        if not forward_to:
            raise ConfigurationError("DEPLOY_FORWARD_TO_EMAIL must be set to deploy email forwarding")

        region = self._config.certificate_region
        name, bucket = self._regional_names("email", request.stage)
        clients = self._clients(ctx)

        store = ObjectStore(clients, region)
        await store.ensure_bucket(bucket)

        try:
            uri = await self._packager(store, bucket).compile(self._config.email_forwarder_unit)
            ctx.lambda_uris[self._config.email_forwarder_unit] = uri
        except PackagingError as exc:
            ctx.warn("email_forwarder_packaging_failed", error=str(exc))

        local, key = EMAIL_TEMPLATE
        template_url = await store.upload_template(bucket, self._config.templates_dir, local, key)

        descriptor = StackDescriptor(
            name=name,
            region=region,
            template_url=template_url,
            parameters=(
                ("Stage", request.stage),
                ("DomainName", request.domain_name or ""),
                ("HostedZoneId", request.hosted_zone_id or ""),
                ("ForwardToEmail", forward_to),
                ("TemplateBucketName", bucket),
            ),
        )
        outputs = await self.reconciler.reconcile(descriptor)

        username = outputs.value("SMTPUsername")
        secret = outputs.value("SMTPSecretAccessKey")
        if username and secret:
            ctx.smtp_credential = SmtpCredential.from_secret(
                username, secret, region, port=self._config.smtp_port
            )
            logger.info(
                "smtp_configuration",
                server=ctx.smtp_credential.server,
                port=ctx.smtp_credential.port,
                username=ctx.smtp_credential.username,
            )

        rule_set = outputs.value("ReceiptRuleSetName")
        if rule_set:
            try:
                await activate_receipt_rule_set(clients.client("ses", region), rule_set)
            except (BotoCoreError, ClientError) as exc:
                ctx.warn("receipt_rule_set_activation_failed", rule_set=rule_set, error=str(exc))

        logger.info(
            "email_forwarding_configured",
            address=f"hello@{request.domain_name}",
            forward_to=forward_to,
        )
