# verifymail/utils/sweeper.py
"""Barrido periódico de desafíos expirados."""

from apscheduler.schedulers.background import BackgroundScheduler

from ..logging.logger import logger

JOB_ID = 'sweep_expired_challenges'


def barrer_expirados(ledger) -> int:
    """Elimina los desafíos vencidos del ledger y devuelve cuántos se eliminaron."""
    eliminados = ledger.sweep()
    if eliminados:
        logger.info("Barrido OTP: %s desafíos expirados eliminados", eliminados)
    return eliminados


def registrar_barrido(scheduler, ledger, intervalo_segundos: int) -> None:
    scheduler.add_job(
        barrer_expirados,
        'interval',
        args=[ledger],
        seconds=intervalo_segundos,
        id=JOB_ID,
        replace_existing=True,
    )


def iniciar_barrido(ledger, intervalo_segundos: int):
    """
    Inicia un BackgroundScheduler que barre el ledger cada intervalo_segundos.

    Returns:
        BackgroundScheduler: el scheduler iniciado, o None si intervalo_segundos <= 0
    """
    if intervalo_segundos <= 0:
        return None
    scheduler = BackgroundScheduler(timezone='UTC')
    registrar_barrido(scheduler, ledger, intervalo_segundos)
    scheduler.start()
    return scheduler
