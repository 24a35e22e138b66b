"""
cipherbid CLI - Command Line Interface for the sealed-bid auction house

Main entry point for all CLI commands.
"""

import asyncio
import logging

import click

from cipherbid.utils.logger import setup_logging, get_logger

logger = get_logger("cli")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="JSON config file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, config_path):
    """Secret Auction House - sealed-bid auctions with encrypted bids"""
    from pydantic import ValidationError as ConfigError
    from cipherbid.core.config import load_config

    try:
        config = load_config(config_path)
    except (ConfigError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    level = logging.DEBUG if debug else getattr(logging, config.log_level)
    setup_logging(level=level, log_dir=str(config.log_dir), log_to_file=config.log_to_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _house(ctx, user_address: str = ""):
    from cipherbid.core.house import AuctionHouse
    return AuctionHouse.from_config(ctx.obj["config"], user_address=user_address)


# =============================================================================
# Catalogue Commands
# =============================================================================


@cli.command("auctions")
@click.option("--search", default="", help="Match title or description (case-insensitive)")
@click.option("--status", default="all", type=click.Choice(["all", "upcoming", "active", "ended"]),
              help="Restrict to one status")
@click.pass_context
def auctions(ctx, search, status):
    """List auctions in the catalogue"""
    from cipherbid.core.auction import project

    house = _house(ctx)
    visible = house.auctions(search, status)
    if not visible:
        click.echo("No auctions found matching your criteria.")
        return

    now = house.clock()
    for auction in visible:
        projection = project(auction, now)
        countdown = f"{projection.prefix} {projection.label}".strip()
        click.echo(f"[{auction.id}] {auction.title}  ({auction.category})")
        click.echo(f"    {projection.status.value:<8} {countdown}")
        click.echo(f"    Starting bid: {auction.starting_bid} ETH   Encrypted bids: {auction.encrypted_bids_count}")
        winner = auction.winner_at(now)
        if winner:
            from cipherbid.core.display import short_address
            click.echo(f"    Winner: {short_address(winner)}")


@cli.command("watch")
@click.argument("auction_id")
@click.option("--seconds", default=5, type=click.IntRange(min=1), help="How long to watch")
@click.pass_context
def watch(ctx, auction_id, seconds):
    """Show a live countdown for one auction"""
    house = _house(ctx)
    if auction_id not in house.catalogue:
        raise click.ClickException(f"Unknown auction {auction_id}")

    def render(projection):
        click.echo(f"  {projection.status.value:<8} {projection.prefix} {projection.label}".rstrip())

    async def run():
        async with house.countdown(auction_id, render):
            await asyncio.sleep(seconds)

    click.echo(f"⏱️  {house.catalogue.require(auction_id).title}")
    asyncio.run(run())


# =============================================================================
# Bid Commands
# =============================================================================


@cli.command("bid")
@click.argument("auction_id")
@click.argument("amount")
@click.option("--address", default=None, help="Bidder wallet address (a signing key is generated if omitted)")
@click.pass_context
def bid(ctx, auction_id, amount, address):
    """Encrypt and submit a sealed bid"""
    from cipherbid.core.errors import CipherBidError
    from cipherbid.crypto import generate_keypair
    from cipherbid.crypto.attestation import StructuralAttestor

    house = _house(ctx)
    if address is None:
        keypair = generate_keypair()
        house.attestor = StructuralAttestor(keypair=keypair)
        address = keypair.address
    house.login(address)

    async def run():
        session = house.select(auction_id)
        click.echo(f"🔒 Encrypting bid for {session.auction.title}...")
        await session.encrypt(amount)
        click.echo(f"  ✓ Bid encrypted: {session.redacted_commitment}")
        click.echo("⛓️  Submitting encrypted bid...")
        return await session.submit()

    try:
        receipt = asyncio.run(run())
    except KeyError:
        raise click.ClickException(f"Unknown auction {auction_id}")
    except CipherBidError as e:
        raise click.ClickException(str(e))

    click.echo("  ✓ Encrypted bid submitted successfully!")
    click.echo(f"  Fingerprint: {receipt.fingerprint}")
    click.echo(f"  Encrypted bids on auction: {receipt.encrypted_bids_count}")


@cli.command("verify")
@click.argument("commitment")
@click.argument("attestation")
def verify(commitment, attestation):
    """Structurally verify an attestation against a commitment"""
    from cipherbid.core.display import redact_commitment, short_address
    from cipherbid.crypto.attestation import parse_attestation, verify_attestation
    from cipherbid.core.errors import AttestationError

    try:
        claims = parse_attestation(attestation)
    except AttestationError as e:
        raise click.ClickException(str(e))

    click.echo(f"Commitment: {redact_commitment(commitment)}")
    click.echo(f"Bidder:     {short_address(claims.identity)}")
    click.echo(f"Timestamp:  {claims.timestamp}")
    click.echo(f"Signed:     {'yes' if claims.is_signed else 'no'}")

    if not verify_attestation(commitment, attestation):
        raise click.ClickException("Attestation does NOT match commitment")
    click.echo("✓ Attestation is well-formed and bound to the commitment (structural check)")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.pass_context
def demo(ctx):
    """Run a scripted bidding scenario"""
    from cipherbid.core.auction import STATUS_ALL
    from cipherbid.core.display import short_address
    from cipherbid.core.errors import ValidationError
    from cipherbid.crypto import generate_keypair
    from cipherbid.crypto.attestation import StructuralAttestor

    click.echo("=" * 60)
    click.echo("  SECRET AUCTION HOUSE - DEMO")
    click.echo("=" * 60)
    click.echo()

    keypair = generate_keypair()
    house = _house(ctx)
    house.attestor = StructuralAttestor(keypair=keypair)
    house.login(keypair.address)
    click.echo(f"👛 Connected as {short_address(keypair.address)}")

    active = house.auctions("", "active")
    click.echo(f"📦 {len(house.auctions('', STATUS_ALL))} auctions, {len(active)} active")
    target = active[0]
    click.echo(f"🎯 Bidding on '{target.title}' (starting bid {target.starting_bid} ETH)")
    click.echo()

    async def run():
        session = house.select(target.id)
        low = target.starting_bid / 5
        try:
            await session.encrypt(low)
        except ValidationError as e:
            click.echo(f"  ✗ {low} ETH rejected: {e}")

        amount = target.starting_bid * 2
        await session.encrypt(amount)
        click.echo(f"  ✓ {amount} ETH encrypted: {session.redacted_commitment}")
        receipt = await session.submit()
        click.echo(f"  ✓ Submitted, fingerprint {receipt.fingerprint}")
        return receipt

    receipt = asyncio.run(run())
    click.echo()
    click.echo(f"📊 '{target.title}' now shows {receipt.encrypted_bids_count} encrypted bids")


if __name__ == "__main__":
    cli()
