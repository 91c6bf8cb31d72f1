"""Exercise definitions inserted into an empty store."""

INITIAL_EXERCISE_DEFINITIONS = [
    {"name": "Barbell Bench Press", "category": "Chest", "type": "weight_reps", "unit": "kg", "description": "Standard bench press with barbell"},
    {"name": "Dumbbell Bench Press", "category": "Chest", "type": "weight_reps", "unit": "kg", "description": "Bench press with dumbbells"},
    {"name": "Incline Bench Press", "category": "Chest", "type": "weight_reps", "unit": "kg", "description": "Bench press on an incline bench"},
    {"name": "Push-ups", "category": "Chest", "type": "reps", "unit": "reps", "description": "Bodyweight push-ups"},
    {"name": "Barbell Rows", "category": "Back", "type": "weight_reps", "unit": "kg", "description": "Bent-over barbell rows"},
    {"name": "Pull-ups", "category": "Back", "type": "reps", "unit": "reps", "description": "Bodyweight pull-ups"},
    {"name": "Lat Pulldown", "category": "Back", "type": "weight_reps", "unit": "kg", "description": "Cable lat pulldown"},
    {"name": "Deadlifts", "category": "Back", "type": "weight_reps", "unit": "kg", "description": "Conventional barbell deadlift"},
    {"name": "Overhead Press", "category": "Shoulders", "type": "weight_reps", "unit": "kg", "description": "Standing barbell press"},
    {"name": "Lateral Raises", "category": "Shoulders", "type": "weight_reps", "unit": "kg", "description": "Dumbbell lateral raises"},
    {"name": "Barbell Squat", "category": "Legs", "type": "weight_reps", "unit": "kg", "description": "Back squat with barbell"},
    {"name": "Leg Press", "category": "Legs", "type": "weight_reps", "unit": "kg", "description": "Machine leg press"},
    {"name": "Walking Lunges", "category": "Legs", "type": "weight_distance", "unit": "kg", "description": "Loaded lunges over a distance"},
    {"name": "Barbell Curl", "category": "Arms", "type": "weight_reps", "unit": "kg", "description": "Standing barbell curl"},
    {"name": "Tricep Dips", "category": "Arms", "type": "reps", "unit": "reps", "description": "Parallel bar dips"},
    {"name": "Plank", "category": "Core", "type": "time_duration", "unit": "seconds", "description": "Front plank hold"},
    {"name": "Hanging Knee Raises", "category": "Core", "type": "reps_time", "unit": "reps", "description": "Knee raises hanging from a bar"},
    {"name": "Weighted Plank", "category": "Core", "type": "weight_time", "unit": "kg", "description": "Plank with a plate on the back"},
    {"name": "Running", "category": "Cardio", "type": "distance_time", "unit": "km", "description": "Outdoor or treadmill run"},
    {"name": "Cycling", "category": "Cardio", "type": "distance", "unit": "km", "description": "Road or stationary bike"},
    {"name": "100m Sprint", "category": "Cardio", "type": "time_speed", "unit": "seconds", "description": "Timed 100 metre sprint"},
    {"name": "Farmer's Carry", "category": "Full Body", "type": "weight_distance", "unit": "kg", "description": "Carry heavy weights over a distance"},
    {"name": "Burpee Broad Jumps", "category": "Full Body", "type": "reps_distance", "unit": "reps", "description": "Burpees followed by a broad jump"},
    {"name": "Kettlebell Swing", "category": "Full Body", "type": "weight", "unit": "kg", "description": "Heaviest kettlebell swung for the session"},
]
