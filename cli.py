import json
import logging
from datetime import date
from pathlib import Path

import click

from config.constants import DebtType, PrepaymentMethod, RepaymentMethod
from config.settings import DEFAULT_DAY_BASIS, DEFAULT_LPR_5Y, EXCEL_FILE, LOG_FORMAT, LOG_LEVEL
from core.calculator import (
    calc_equal_payment,
    calc_equal_principal_first_period,
    calc_total_interest,
    generate_schedule,
)
from core.day_count import generate_interest_first_schedule
from core.portfolio import confirm_debt, portfolio_frame, summarize_portfolio
from core.prepayment import calc_prepayment_effect, compare_prepayment_modes
from core.schedule_builder import (
    build_events,
    current_month_remaining,
    events_to_frame,
    next_month_total,
)
from data_manager.data_validator import validate_loan_record, validate_prepayment
from data_manager.excel_handler import (
    delete_confirmed_debt,
    get_all_config,
    get_all_debts,
    get_config,
    get_confirmed_debts,
    get_float_config,
    get_mortgage_records,
    save_confirmed_debt,
    set_config,
)
from data_manager.schema import record_from_dict
from utils.date_utils import parse_date
from utils.formatters import fmt_months, fmt_wan, fmt_yuan

def _parse_date_option(value):
    if value is None:
        return date.today()
    today = parse_date(value)
    if today is None:
        raise click.BadParameter(f"Invalid date: {value}")
    return today

@click.group()
@click.option('--data-file', type=click.Path(path_type=Path), default=EXCEL_FILE, show_default=True, help='Excel data file')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']), default=LOG_LEVEL, help='Logging level')
@click.pass_context
def cli(ctx, data_file, log_level):
    """A CLI for the debt repayment engine."""
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    ctx.ensure_object(dict)
    ctx.obj['data_file'] = data_file

@cli.command()
@click.option('--principal', type=float, required=True, help='Loan principal (yuan)')
@click.option('--annual-rate', type=float, required=True, help='Annual rate, decimal or percent')
@click.option('--term-months', type=int, required=True, help='Loan term in months')
def equal_payment(principal, annual_rate, term_months):
    """Calculates the monthly payment and total interest for an equal payment loan."""
    monthly = calc_equal_payment(principal, annual_rate, term_months)
    total_interest = calc_total_interest(principal, annual_rate, term_months, RepaymentMethod.EQUAL_PAYMENT)
    click.echo(f"Monthly payment: {monthly:.2f}")
    click.echo(f"Total interest: {total_interest:.2f}")

@cli.command()
@click.option('--principal', type=float, required=True, help='Loan principal (yuan)')
@click.option('--annual-rate', type=float, required=True, help='Annual rate, decimal or percent')
@click.option('--term-months', type=int, required=True, help='Loan term in months')
def equal_principal(principal, annual_rate, term_months):
    """Calculates the first period payment and total interest for an equal principal loan."""
    first = calc_equal_principal_first_period(principal, annual_rate, term_months)
    total_interest = calc_total_interest(principal, annual_rate, term_months, RepaymentMethod.EQUAL_PRINCIPAL)
    click.echo(f"First month payment: {first:.2f}")
    click.echo(f"Total interest: {total_interest:.2f}")

@cli.command('amortization-schedule')
@click.option('--principal', type=float, required=True, help='Loan principal (yuan)')
@click.option('--annual-rate', type=float, required=True, help='Annual rate, decimal or percent')
@click.option('--term-months', type=int, required=True, help='Loan term in months')
@click.option('--repayment-method', type=click.Choice(['equal-payment', 'equal-principal']), required=True, help='Repayment method')
@click.option('--start-date', type=str, required=True, help='Start date (YYYY-MM-DD)')
@click.option('--repayment-day', type=int, default=None, help='Repayment day, defaults to the start day')
def amortization_schedule_command(principal, annual_rate, term_months, repayment_method, start_date, repayment_day):
    """Generates an amortization schedule and outputs it as CSV."""
    start = _parse_date_option(start_date)
    schedule = generate_schedule(principal, annual_rate, term_months, repayment_method, start, repayment_day)
    click.echo(schedule.to_csv(index=False))

@cli.command('interest-first-schedule')
@click.option('--principal', type=float, required=True, help='Loan principal (yuan)')
@click.option('--annual-rate', type=float, required=True, help='Annual rate, decimal or percent')
@click.option('--start-date', type=str, required=True, help='Start date (YYYY-MM-DD)')
@click.option('--end-date', type=str, required=True, help='End date (YYYY-MM-DD)')
@click.option('--repayment-day', type=int, default=None, help='Repayment day, defaults to the start day')
@click.option('--day-basis', type=click.Choice(['360', '365']), default=None, help='Day count basis')
@click.pass_context
def interest_first_schedule_command(ctx, principal, annual_rate, start_date, end_date, repayment_day, day_basis):
    """Generates an actual-day interest-first schedule and outputs it as CSV."""
    basis = int(day_basis) if day_basis else int(get_float_config('day_basis', DEFAULT_DAY_BASIS, ctx.obj['data_file']))
    schedule = generate_interest_first_schedule(principal, annual_rate, start_date, end_date, repayment_day, basis)
    if schedule.empty:
        raise click.ClickException("Cannot build a schedule from the given dates.")
    click.echo(schedule.to_csv(index=False))

@cli.command()
@click.option('--principal', type=float, required=True, help='Remaining principal (yuan)')
@click.option('--annual-rate', type=float, required=True, help='Annual rate, decimal or percent')
@click.option('--remaining-months', type=int, required=True, help='Remaining months')
@click.option('--amount', type=float, required=True, help='Prepayment amount (yuan)')
@click.option('--fee-pct', type=float, default=0.0, help='Prepayment fee percentage')
@click.option('--method', type=click.Choice([m.value for m in PrepaymentMethod]), default=None, help='Prepayment method, all methods when omitted')
@click.option('--monthly-payment', type=float, default=None, help='Current monthly payment')
@click.option('--custom-payment', type=float, default=None, help='New monthly payment for custom_payment')
def prepayment(principal, annual_rate, remaining_months, amount, fee_pct, method, monthly_payment, custom_payment):
    """Estimates the effect of a prepayment on an equal payment loan."""
    ok, msg = validate_prepayment(amount, principal, method or PrepaymentMethod.REDUCE_PAYMENT.value, fee_pct)
    if not ok:
        raise click.ClickException(msg)
    if method is None:
        result = compare_prepayment_modes(
            principal, annual_rate, remaining_months, amount, fee_pct, monthly_payment, custom_payment,
        )
        click.echo(result.to_string(index=False))
        return
    effect = calc_prepayment_effect(
        method, principal, annual_rate, remaining_months, amount, fee_pct, monthly_payment, custom_payment,
    )
    if effect is None:
        raise click.ClickException("Prepayment effect is unavailable for these inputs.")
    click.echo(f"New monthly payment: {effect.new_monthly_payment_yuan:.2f}")
    click.echo(f"New term: {fmt_months(effect.new_term_months)}")
    click.echo(f"Fee: {effect.fee_yuan:.2f}")
    click.echo(f"Interest saved: {effect.interest_saved_yuan:.2f}")

@cli.command()
@click.option('--debt-type', type=click.Choice([t.value for t in DebtType]), required=True, help='Debt type')
@click.option('--records-file', type=click.Path(exists=True, path_type=Path), required=True, help='JSON file with a list of records')
@click.option('--name', type=str, default=None, help='Display name')
@click.option('--today', type=str, default=None, help='Reference date (YYYY-MM-DD)')
@click.pass_context
def confirm(ctx, debt_type, records_file, name, today):
    """Aggregates records and stores them as a confirmed debt."""
    data_file = ctx.obj['data_file']
    items = json.loads(records_file.read_text(encoding='utf-8'))
    records = [record_from_dict(debt_type, item) for item in items]
    for record in records:
        ok, msg = validate_loan_record(debt_type, record)
        if not ok:
            raise click.ClickException(f"{record.id}: {msg}")
    lpr = get_float_config('lpr_5y', DEFAULT_LPR_5Y, data_file)
    try:
        debt = confirm_debt(debt_type, records, name=name, today=_parse_date_option(today), lpr_pct=lpr)
    except ValueError as exc:
        raise click.ClickException(str(exc))
    save_confirmed_debt(debt, data_file)
    click.echo(f"Debt '{debt.debt_id}' confirmed: {debt.summary.count} records, "
               f"{fmt_wan(debt.summary.amount_wan)}, {fmt_yuan(debt.summary.monthly_payment_yuan)}/month")

@cli.command('list-debts')
@click.pass_context
def list_debts(ctx):
    """Lists all confirmed debts."""
    debts = get_all_debts(ctx.obj['data_file'])
    click.echo(debts.drop(columns=['records_json'], errors='ignore').to_string())

@cli.command('delete-debt')
@click.option('--debt-id', type=str, required=True, help='Debt ID')
@click.pass_context
def delete_debt_command(ctx, debt_id):
    """Deletes a confirmed debt."""
    if delete_confirmed_debt(debt_id, ctx.obj['data_file']):
        click.echo(f"Debt with ID '{debt_id}' deleted successfully.")
    else:
        click.echo(f"Debt with ID '{debt_id}' not found.")

@cli.command()
@click.pass_context
def portfolio(ctx):
    """Shows the portfolio summary of all confirmed debts."""
    debts = get_confirmed_debts(ctx.obj['data_file'])
    if not debts:
        click.echo("No confirmed debts.")
        return
    click.echo(portfolio_frame(debts).to_string(index=False))
    totals = summarize_portfolio(debts)
    click.echo(f"\nTotal principal: {fmt_wan(totals['total_amount_wan'])}")
    click.echo(f"Monthly payment: {fmt_yuan(totals['monthly_payment_yuan'])}")
    click.echo(f"Longest remaining term: {fmt_months(totals['max_remaining_months'])}")
    click.echo(f"Remaining interest: {fmt_wan(totals['remaining_interest_wan'])}")

@cli.command()
@click.option('--year', type=int, default=None, help='Calendar year, defaults to the current year')
@click.option('--month', type=click.IntRange(1, 12), default=None, help='Calendar month, defaults to the current month')
@click.option('--today', type=str, default=None, help='Reference date (YYYY-MM-DD)')
@click.pass_context
def calendar(ctx, year, month, today):
    """Shows the repayment calendar of a month."""
    data_file = ctx.obj['data_file']
    today = _parse_date_option(today)
    lpr = get_float_config('lpr_5y', DEFAULT_LPR_5Y, data_file)
    events = build_events(get_confirmed_debts(data_file), get_mortgage_records(data_file), today, lpr)
    frame = events_to_frame(events, year or today.year, month or today.month)
    click.echo(frame.to_string(index=False) if not frame.empty else "No repayments this month.")
    click.echo(f"\nRemaining this month: {fmt_yuan(current_month_remaining(events, today))}")
    click.echo(f"Next month total: {fmt_yuan(next_month_total(events, today))}")

@cli.command('list-configs')
@click.pass_context
def list_configs(ctx):
    """Lists all system configurations."""
    configs = get_all_config(ctx.obj['data_file'])
    click.echo(configs.to_string())

@cli.command('get-config')
@click.option('--key', type=str, required=True, help='Config key')
@click.pass_context
def get_config_command(ctx, key):
    """Gets a system configuration by its key."""
    value = get_config(key, ctx.obj['data_file'])
    if value is not None:
        click.echo(value)
    else:
        click.echo(f"Config with key '{key}' not found.")

@cli.command('set-config')
@click.option('--key', type=str, required=True, help='Config key')
@click.option('--value', type=str, required=True, help='Config value')
@click.option('--description', type=str, default='', help='Description')
@click.pass_context
def set_config_command(ctx, key, value, description):
    """Sets a system configuration."""
    set_config(key, value, description, ctx.obj['data_file'])
    click.echo(f"Config with key '{key}' set successfully.")

if __name__ == "__main__":
    cli()
