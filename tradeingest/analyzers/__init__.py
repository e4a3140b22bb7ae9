from .pnl_calculator import calculate_pnl, compute_pnl, compute_pnl_with_commission, compute_pnl_frame, detect_forex_lot_size, forex_pip_value
