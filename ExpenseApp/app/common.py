import logging
import logging.handlers

from ExpenseApp.app import app

LOG_FORMAT = '[%(asctime)s] p%(process)s {%(pathname)s:%(lineno)d} %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%m-%d %H:%M:%S'


def get_setting(parameter: str, default=None):
    value = app.config.get(parameter)
    if value is None:
        return default
    return value


def logging_initiate():
    global logger, initiate_logging_done

    logger = logging.getLogger('ExpenseApp')
    logger.setLevel(get_setting('LOG_LEVEL', 'DEBUG'))
    logger.propagate = False

    format = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(format)
    logger.addHandler(stream_handler)

    log_file = get_setting('LOG_FILE')
    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        file_handler.setFormatter(format)
        logger.addHandler(file_handler)

    mail_host = get_setting('LOG_MAIL_HOST')
    if mail_host:
        logger.debug('Attempting to start SMTP logging')
        to_addrs = get_setting('LOG_MAIL_TO', [])
        if isinstance(to_addrs, str):
            to_addrs = [to_addrs]
        smtp_handler = logging.handlers.SMTPHandler(mailhost=mail_host,
                                                    fromaddr=get_setting('LOG_MAIL_FROM'),
                                                    toaddrs=to_addrs,
                                                    subject='ExpenseApp Logging')
        smtp_handler.setLevel(logging.ERROR)
        smtp_handler.setFormatter(format)
        logger.addHandler(smtp_handler)

    initiate_logging_done = True
    logger.debug('ExpenseApp: Logging started')


def check_logging_initiate():
    if not initiate_logging_done:
        logging_initiate()


#initiate logging
initiate_logging_done = False
logger = logging.getLogger('ExpenseApp')
check_logging_initiate()
