import random
from datetime import date, timedelta

COLUMNS = ['dog_id', 'dam_id', 'sire_id', 'name', 'breed', 'gender', 'date_of_birth',
           'health_tested', 'health_conditions']
NAMES = ['Duke', 'Belle', 'Max', 'Daisy', 'Charlie', 'Luna', 'Rocky', 'Bella', 'Buddy', 'Lucy']
CONDITIONS = ['Hip Dysplasia', 'Progressive Retinal Atrophy', 'Exercise-Induced Collapse']


def generate_kennel_pedigree(num_dogs=100, breed='Labrador Retriever', seed=None):
    """
    Generates a complex, inbred kennel pedigree as a list of row dicts.
    Parents are always drawn from dogs born earlier, so the pedigree never
    loops.
    """
    rng = random.Random(seed)
    rows = []
    genders = {}
    born = {}

    def add(dog_id, dam_id, sire_id, day):
        gender = rng.choice(['M', 'F'])
        genders[dog_id] = gender
        born[dog_id] = day
        rows.append({
            'dog_id': dog_id,
            'dam_id': dam_id,
            'sire_id': sire_id,
            'name': f"{rng.choice(NAMES)} {dog_id}",
            'breed': breed,
            'gender': gender,
            'date_of_birth': day.isoformat(),
            'health_tested': rng.random() < 0.5,
            'health_conditions': rng.choice(CONDITIONS) if rng.random() < 0.1 else '',
        })

    # --- Generation 1: Founders ---
    founders = [f"D{i:03d}" for i in range(1, 11)]
    for i, founder in enumerate(founders):
        add(founder, None, None, date(2010, 1, 1) + timedelta(days=30 * i))
    # Both sexes are needed before any litter can be bred
    genders[founders[0]], rows[0]['gender'] = 'M', 'M'
    genders[founders[1]], rows[1]['gender'] = 'F', 'F'

    # --- Subsequent Generations ---
    next_id = len(founders) + 1
    while next_id <= num_dogs:
        available_dams = [dog_id for dog_id, sex in genders.items() if sex == 'F']
        available_sires = [dog_id for dog_id, sex in genders.items() if sex == 'M']

        dam = rng.choice(available_dams)
        sire = rng.choice(available_sires)
        day = max(born[dam], born[sire]) + timedelta(days=rng.randint(400, 1200))

        add(f"D{next_id:03d}", dam, sire, day)
        next_id += 1

    return rows


if __name__ == "__main__":
    # To run this from command line and save to a file:
    # python generate_pedigree.py > kennel_pedigree_100.csv
    print(','.join(COLUMNS))
    for row in generate_kennel_pedigree():
        print(','.join('' if row[col] is None else str(row[col]) for col in COLUMNS))
