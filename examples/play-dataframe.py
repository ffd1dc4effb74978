from framepyground import DataFrame, cut

df = DataFrame(
    {
        "name": ["Alice", "Bob", "Carol", "Dan", "Erin"],
        "dept": ["eng", "ops", "eng", "ops", None],
        "age": [34, 51, 28, 45, 39],
        "salary": [5200.0, 4100.0, 6100.0, None, 4800.0],
    }
)

print(df.sort_values(["dept", "salary"], ascending=[True, False]))
print()

print(df.group_by("dept").agg({"salary": ["mean", "count"], "age": "max"}))
print()

adults = df.filter(df["age"].isin([28, 34, 39]))
print(adults)
print()

print(cut(df["age"], [20, 35, 50, 65], labels=["young", "middle", "senior"]).value_counts())
