"""
Turf replay tool configuration.
"""

# Logging
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

# Input gate
FIX_GATE_CONFIG = {
    "null_island_epsilon_deg": 0.0001,  # |lat| and |lng| below this are (0, 0) artifacts
    "max_jump_m": 150.0,                # Largest jump within one reporting interval
    "reporting_interval_ms": 3000,      # Location request interval
}

# Signal conditioner
CONDITIONER_CONFIG = {
    "signal_loss_ms": 3000,
    "decay_rate": 1.5,
    "impossible_speed_m_s": 25.0,       # ~90 km/h
    "max_rejection_streak_ms": 10000,
    "max_accuracy_m": 20.0,
    "max_velocity_m_s": 20.0,           # ~72 km/h
    "min_measurement_accuracy_m": 5.0,
    "anchor_deadband_m": 10.0,
    "stationary_threshold_m": 2.0,
    "stationary_time_ms": 5000,
}

# Path tracker
TRACKER_CONFIG = {
    "min_point_spacing_m": 8.0,
    "max_splice_gap_m": 50.0,
}

# Territory geometry
GEOMETRY_CONFIG = {
    "loop_closure_m": 50.0,
    "loop_search_threshold_m": 30.0,
    "min_loop_search_points": 10,
    "min_loop_index_gap": 5,
    "min_loop_area_m2": 100.0,
}

# Replay / simulation
REPLAY_CONFIG = {
    "search_largest_loop": True,
    "print_metrics": True,
    "simulation_center": (59.3293, 18.0686),
    "simulation_block_size_m": 150.0,
    "simulation_spacing_m": 12.0,
    "simulation_interval_ms": 3000,
    "simulation_seed": 7,
}
