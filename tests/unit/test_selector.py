"""Tests for mapping delivery modes to transport configurations."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from smtp_verifier.config import Settings
from smtp_verifier.exceptions import ConfigurationError, CredentialError
from smtp_verifier.models import ClientCertificate, DeliveryMethod, DeliveryMode
from smtp_verifier.transport.selector import build_all, build_config


def create_settings(**kwargs) -> Settings:
    """Create Settings instance without loading .env file."""
    defaults = {
        "email_username": "probe@example.com",
        "email_password": "app-password",
        "pickup_directory": "/srv/pickup",
        "trust_store_path": "/etc/ssl/certs",
    }
    defaults.update(kwargs)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def certificate() -> ClientCertificate:
    return ClientCertificate(
        thumbprint="4197D86EF230F5E475C8458C60523ADD344BB78D",
        subject="CN=smtp-client.test",
        der=b"\x30\x00",
        source=Path("/etc/ssl/certs/client.pem"),
    )


class TestDirectNetwork:
    """Tests for the direct-network mode."""

    def test_public_endpoint_with_tls(self) -> None:
        config = build_config(DeliveryMode.DIRECT_NETWORK, create_settings())

        assert config.host == "smtp.gmail.com"
        assert config.port == 587
        assert config.delivery_method == DeliveryMethod.NETWORK
        assert config.use_tls is True
        assert config.mode == DeliveryMode.DIRECT_NETWORK

    def test_explicit_credentials_from_settings(self) -> None:
        config = build_config(DeliveryMode.DIRECT_NETWORK, create_settings())

        assert config.credentials is not None
        assert config.credentials.username == "probe@example.com"
        assert config.credentials.password.get_secret_value() == "app-password"
        assert config.use_ambient_credentials is False
        assert config.client_certificate is None

    def test_accepts_mode_string(self) -> None:
        config = build_config("direct-network", create_settings())
        assert config.mode == DeliveryMode.DIRECT_NETWORK

    def test_missing_password_raises_credential_error(self) -> None:
        with pytest.raises(CredentialError):
            build_config(DeliveryMode.DIRECT_NETWORK, create_settings(email_password=""))

    def test_missing_username_raises_credential_error(self) -> None:
        with pytest.raises(CredentialError):
            build_config(DeliveryMode.DIRECT_NETWORK, create_settings(email_username=""))

    def test_custom_endpoint(self) -> None:
        settings = create_settings(public_smtp_host="smtp.example.com", public_smtp_port=2587)
        config = build_config(DeliveryMode.DIRECT_NETWORK, settings)

        assert config.host == "smtp.example.com"
        assert config.port == 2587


class TestLocalPickup:
    """Tests for the local-pickup mode."""

    def test_pickup_directory_set(self) -> None:
        config = build_config(DeliveryMode.LOCAL_PICKUP, create_settings())

        assert config.delivery_method == DeliveryMethod.PICKUP_DIRECTORY
        assert config.pickup_directory == Path("/srv/pickup")
        assert config.is_pickup

    def test_no_credential_source(self) -> None:
        config = build_config(DeliveryMode.LOCAL_PICKUP, create_settings())

        assert config.credentials is None
        assert config.use_ambient_credentials is False
        assert config.client_certificate is None

    def test_directory_existence_not_checked(self) -> None:
        """Test that a missing directory is only discovered at send time."""
        settings = create_settings(pickup_directory="/definitely/not/here")

        config = build_config(DeliveryMode.LOCAL_PICKUP, settings)

        assert config.pickup_directory == Path("/definitely/not/here")

    def test_empty_directory_rejected(self) -> None:
        """Test that an empty directory is not resolved to the working directory."""
        settings = create_settings().model_copy(update={"pickup_directory": ""})

        with pytest.raises(ConfigurationError):
            build_config(DeliveryMode.LOCAL_PICKUP, settings)

    def test_secrets_not_required(self) -> None:
        settings = create_settings(email_username="", email_password="")

        config = build_config(DeliveryMode.LOCAL_PICKUP, settings)

        assert config.is_pickup


class TestMutualTlsNetwork:
    """Tests for the mutual-TLS mode."""

    def test_private_endpoint_with_ambient_credentials(self, certificate) -> None:
        find_cert = MagicMock(return_value=certificate)

        config = build_config(DeliveryMode.MUTUAL_TLS_NETWORK, create_settings(), find_cert)

        assert config.host == "Windows-Server"
        assert config.port == 25
        assert config.use_tls is True
        assert config.use_ambient_credentials is True
        assert config.credentials is None
        assert config.client_certificate is certificate

    def test_lookup_uses_configured_thumbprint_and_store(self, certificate) -> None:
        find_cert = MagicMock(return_value=certificate)
        settings = create_settings(
            client_cert_thumbprint="ab" * 20,
            trust_store_name="client",
            trust_store_path="/srv/certs",
            client_key_path="/srv/certs/client.key",
        )

        build_config(DeliveryMode.MUTUAL_TLS_NETWORK, settings, find_cert)

        query, key_path = find_cert.call_args.args
        assert query.thumbprint == "AB" * 20
        assert query.store.name == "client"
        assert query.store.location == Path("/srv/certs")
        assert key_path == "/srv/certs/client.key"

    def test_missing_certificate_is_carried_forward(self) -> None:
        """Test that a failed lookup yields a config with no certificate."""
        config = build_config(
            DeliveryMode.MUTUAL_TLS_NETWORK,
            create_settings(),
            MagicMock(return_value=None),
        )

        assert config.client_certificate is None
        assert config.requires_client_certificate

    def test_private_ca_file(self, certificate) -> None:
        settings = create_settings(private_ca_file="/srv/certs/private-ca.pem")

        config = build_config(
            DeliveryMode.MUTUAL_TLS_NETWORK, settings, MagicMock(return_value=certificate)
        )

        assert config.ca_file == Path("/srv/certs/private-ca.pem")

    def test_real_lookup_against_bundle(self, cert_bundle: Path, client_cert, cert_tools) -> None:
        """Test the default lookup finds the certificate in the configured bundle."""
        cert, _ = client_cert
        settings = create_settings(
            trust_store_path=str(cert_bundle),
            client_cert_thumbprint=cert_tools.fingerprint(cert),
        )

        config = build_config(DeliveryMode.MUTUAL_TLS_NETWORK, settings)

        assert config.client_certificate is not None
        assert config.client_certificate.thumbprint == cert_tools.fingerprint(cert)


class TestBuildConfig:
    """Tests across all modes."""

    def test_unknown_mode_raises(self) -> None:
        with pytest.raises(ValueError):
            build_config("carrier-pigeon", create_settings())

    @pytest.mark.parametrize("mode", list(DeliveryMode))
    def test_every_mode_records_itself(self, mode: DeliveryMode, certificate) -> None:
        config = build_config(mode, create_settings(), MagicMock(return_value=certificate))

        assert config.mode == mode
        assert not (config.credentials and config.use_ambient_credentials)

    def test_build_all(self, certificate) -> None:
        configs = build_all(create_settings(), MagicMock(return_value=certificate))

        assert set(configs) == set(DeliveryMode)

    def test_build_all_skips_modes_without_secrets(self, certificate) -> None:
        settings = create_settings(email_username="", email_password="")

        configs = build_all(settings, MagicMock(return_value=certificate))

        assert DeliveryMode.DIRECT_NETWORK not in configs
        assert DeliveryMode.LOCAL_PICKUP in configs
        assert DeliveryMode.MUTUAL_TLS_NETWORK in configs
